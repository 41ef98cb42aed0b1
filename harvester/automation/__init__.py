"""
Page automation: abstract browsing interface and its SeleniumBase backend.
"""

from .base import BrowserHandle, PageElement, PageSession

__all__ = [
    'BrowserHandle',
    'PageElement',
    'PageSession',
]
