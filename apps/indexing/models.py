"""
Document chunk records for the vectors stored in Pinecone.
"""
import uuid
from django.db import models

from apps.docs.models import Document


class DocumentChunk(models.Model):
    """
    A text chunk of a document.

    The embedding itself lives in the Pinecone index under vector_id; the
    row keeps the text and page so chunks can be inspected or re-embedded.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    document = models.ForeignKey(
        Document,
        on_delete=models.CASCADE,
        related_name='chunks',
        help_text="The source document"
    )

    # Chunk ordering across the whole document (0-indexed)
    chunk_index = models.PositiveIntegerField(
        help_text="Index of this chunk within the document (0-based)"
    )
    page_number = models.PositiveIntegerField(default=1)

    text = models.TextField()

    # ID of the vector in the Pinecone index ("<document_id>-<chunk_index>")
    vector_id = models.CharField(max_length=100)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'doc_chunks'
        ordering = ['document', 'chunk_index']
        constraints = [
            models.UniqueConstraint(
                fields=['document', 'chunk_index'],
                name='unique_document_chunk'
            )
        ]

    def __str__(self):
        preview = self.text[:50] + '...' if len(self.text) > 50 else self.text
        return f"Chunk {self.chunk_index} (page {self.page_number}) of {self.document_id}: {preview}"
