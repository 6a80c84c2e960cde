"""Property listings REST backend."""
