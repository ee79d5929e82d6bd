"""kanbanmd: a task board backed by a plain KANBAN.md file."""

__version__ = "0.1.0"
