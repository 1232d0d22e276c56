"""
Configuration modules for board generation.
"""

from .board_templates import get_template, list_templates, TEMPLATES, TemplateNotFoundError
from .config import settings

__all__ = ['get_template', 'list_templates', 'TEMPLATES', 'TemplateNotFoundError', 'settings']
