"""
On-disk writers for block files.

- ChunkFileWriter: chunk records in segment files under ``chunks/``
- IndexWriter: the binary ``index`` file
- write_json_atomic: ``meta.json`` and other small JSON files
"""

from .chunk_writer import (
    CHUNKS_FORMAT_V1,
    MAGIC_CHUNKS,
    ChunkFileWriter,
    encode_chunk_record,
    segment_file_name,
)
from .file_ops import ensure_directory, write_json_atomic
from .index_writer import (
    INDEX_FORMAT_V2,
    MAGIC_INDEX,
    IndexStage,
    IndexWriter,
    TableOfContents,
)

__all__ = [
    # Chunks
    "ChunkFileWriter",
    "encode_chunk_record",
    "segment_file_name",
    "MAGIC_CHUNKS",
    "CHUNKS_FORMAT_V1",
    # Index
    "IndexWriter",
    "IndexStage",
    "TableOfContents",
    "MAGIC_INDEX",
    "INDEX_FORMAT_V2",
    # Files
    "ensure_directory",
    "write_json_atomic",
]
