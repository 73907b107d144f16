"""
glossary-translator

DeepL translation with a temporary per-session glossary, from the command
line or a small web UI.
"""

__version__ = "0.1.0"
