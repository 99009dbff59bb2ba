"""Pool state, commitment tree, nullifier registry and transaction validation."""
