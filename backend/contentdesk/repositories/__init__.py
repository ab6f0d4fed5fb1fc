from contentdesk.repositories.base import EntityRepository

__all__ = ["EntityRepository"]
