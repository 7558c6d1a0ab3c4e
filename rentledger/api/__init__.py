"""HTTP API for settlement and ledger queries."""
