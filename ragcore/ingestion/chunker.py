"""Recursive character chunking for document ingestion."""

from langchain_text_splitters import RecursiveCharacterTextSplitter


class TextChunker:
    """
    Splits text on paragraph, line, word and finally character boundaries,
    keeping chunks under ``chunk_size`` characters with ``chunk_overlap``
    characters carried between neighbours.
    """

    def __init__(self, chunk_size: int = 500, chunk_overlap: int = 50):
        if chunk_overlap >= chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")

        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap
        self._splitter = RecursiveCharacterTextSplitter(
            chunk_size=chunk_size,
            chunk_overlap=chunk_overlap,
            length_function=len,
        )

    def split(self, text: str) -> list[str]:
        """Split ``text`` into non-empty chunks (empty list for blank text)."""
        if not text.strip():
            return []
        return [chunk for chunk in self._splitter.split_text(text) if chunk.strip()]
