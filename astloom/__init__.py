"""astloom - LLM-driven repository translation over a unified AST."""

__version__ = "0.1.0"
