"""Cross-cutting utilities: exceptions, logging, ledger events and configuration."""
