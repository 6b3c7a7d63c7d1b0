"""
Content - publishable records, their repository and the content service.
"""

from portal.kernel.content.repository import ContentRepository

__all__ = ["ContentRepository"]
