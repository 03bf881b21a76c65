"""Utility modules for imagemcp."""
