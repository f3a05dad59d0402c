"""slidesmith: turn documents into editable, exportable slide decks with LLM help."""

__version__ = "1.0.0"
