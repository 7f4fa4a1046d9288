"""Account persistence, terms-of-service policy and account bootstrap."""

from autocert.accounts.base import AccountStore, AccountStoreError
from autocert.accounts.file_store import FileSystemAccountStore
from autocert.accounts.manager import AccountManager, AccountSession
from autocert.accounts.tos import TermsOfServiceChecker, TermsOfServiceNotAcceptedError

__all__ = [
    "AccountManager",
    "AccountSession",
    "AccountStore",
    "AccountStoreError",
    "FileSystemAccountStore",
    "TermsOfServiceChecker",
    "TermsOfServiceNotAcceptedError",
]
