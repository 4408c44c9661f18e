"""Spec generators: remote (OpenAI compatible) and offline heuristic."""
