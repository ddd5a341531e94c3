"""
Document chat app.

Provides:
- Query embedding via Gemini
- Per-document retrieval from Pinecone with fallbacks
- LLM prompting with the document's analysis and excerpts
"""
