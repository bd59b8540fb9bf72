"""Database schema for the docindex SQLite store."""

SCHEMA = """
-- One row per indexed file; a row exists even when no text was extracted
CREATE TABLE IF NOT EXISTS FileMetadata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fileName TEXT NOT NULL,
    filePath TEXT NOT NULL UNIQUE,
    fileType TEXT NOT NULL,
    fileSize INTEGER NOT NULL,
    modifiedDate TEXT NOT NULL,
    extractedText TEXT,
    indexedDate TEXT NOT NULL,
    hash TEXT NOT NULL
);

-- Chunk text and its embedding (JSON array of floats)
CREATE TABLE IF NOT EXISTS ChunkEmbedding (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    fileMetadataId INTEGER NOT NULL,
    chunkText TEXT NOT NULL,
    chunkIndex INTEGER NOT NULL,
    embeddingJson TEXT NOT NULL,
    createdDate TEXT NOT NULL,
    FOREIGN KEY (fileMetadataId) REFERENCES FileMetadata(id) ON DELETE CASCADE
);

-- Index-level metadata (embedding model, schema version)
CREATE TABLE IF NOT EXISTS IndexMetadata (
    key TEXT PRIMARY KEY,
    value TEXT
);

CREATE INDEX IF NOT EXISTS idx_chunk_file ON ChunkEmbedding(fileMetadataId);
"""
