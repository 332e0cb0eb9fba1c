"""Content synchronization pipeline: source -> embeddings -> vector store."""
