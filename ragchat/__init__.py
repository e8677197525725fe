"""Grounded RAG chat: conversation controller, citation rendering and backend glue."""
