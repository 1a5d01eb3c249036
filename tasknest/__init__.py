"""Personal todo API with AI-assisted summaries, prioritization and subtasks."""

__version__ = "0.1.0"
