"""
AnswerStream: streaming answers from OpenAI-compatible chat servers,
classified into headings, lists, tables and math as they arrive.
"""

__version__ = "0.1.0"
