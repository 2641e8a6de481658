"""Core primitives: error taxonomy and the persisted payload codec."""
