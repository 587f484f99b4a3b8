"""Domain models exchanged with callers and storage collaborators."""
