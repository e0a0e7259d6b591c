from autophrase.models.phrase import AutoPhrase

__all__ = ["AutoPhrase"]
