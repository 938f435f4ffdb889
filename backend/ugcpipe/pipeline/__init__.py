"""Prompt construction and post-generation recipes."""
