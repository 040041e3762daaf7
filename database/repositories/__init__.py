from database.repositories.base import BaseRepository
from database.repositories.submission import PutResult, SubmissionRepository
from database.repositories.workflow import TokenRepository, WorkflowRepository

__all__ = [
    'BaseRepository',
    'PutResult',
    'SubmissionRepository',
    'TokenRepository',
    'WorkflowRepository',
]
