"""
Watched directories → Page text → Local LLM parsing → Deduplicated transaction store

An unattended, retry-safe pipeline that picks up bank statement PDFs from
watched directories, extracts transactions page by page with a local Ollama
model, and persists them idempotently with an append-only audit log.
"""

__version__ = "0.1.0"
