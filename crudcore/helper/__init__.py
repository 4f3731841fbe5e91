from .converter import as_mapping, merge_onto, project, project_many

__all__ = ["as_mapping", "merge_onto", "project", "project_many"]
