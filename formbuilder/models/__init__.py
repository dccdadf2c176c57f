"""
Database models package
"""
from formbuilder.models.form import Form
from formbuilder.models.response import FormResponse

__all__ = ["Form", "FormResponse"]
