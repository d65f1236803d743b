"""
Export HelpJuice knowledge bases to a static tree of Markdown documents.

Categories become directories, every question becomes a directory holding a
README.md, and images/links inside answer bodies are rewritten so they
resolve inside the generated tree. Anything that cannot be resolved is
collected in Images.txt / Links.txt at the output root.
"""

__version__ = "1.0.0"
