from .models import ProjectAssessment, ProjectTemplate

__all__ = ["ProjectAssessment", "ProjectTemplate"]
