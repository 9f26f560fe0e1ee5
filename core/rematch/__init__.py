"""Rematch Module - (re)matching of requests whose match failed or never existed."""
from core.rematch.dto import RetryResult, SweepResult, SubmitResult
from core.rematch.orchestrator import RematchOrchestrator, RETRY_ALL_UNMATCHED

__all__ = ['RematchOrchestrator', 'RetryResult', 'SweepResult', 'SubmitResult', 'RETRY_ALL_UNMATCHED']
