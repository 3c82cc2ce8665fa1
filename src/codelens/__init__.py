"""Codelens — ask questions about a code project and apply AI-proposed edits.

  codelens import DIR   Load a source tree, save it and build its semantic index.
  codelens chat ID      Ask grounded questions; review, apply and undo suggested code.
  codelens serve        HTTP API: /api/embeddings and a streaming /api/chat.
"""

__version__ = "0.1.0"
