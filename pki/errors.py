"""Exceptions raised by the key / request / output pipeline."""
from __future__ import annotations


class CsrError(Exception):
    """Base class for every fatal failure of a new-csr run."""

    operation = "new-csr"

    def __init__(self, detail: str, cause: BaseException | None = None) -> None:
        self.detail = detail
        self.cause = cause
        message = f"{self.operation}: {detail}"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class KeyGenerationError(CsrError):
    """The RSA key could not be generated."""

    operation = "generate key"


class RequestBuildError(CsrError):
    """The CSR could not be encoded or signed."""

    operation = "build request"


class OutputWriteError(CsrError):
    """An output file could not be created or written."""

    operation = "write output"

    def __init__(self, path: str, cause: BaseException | None = None) -> None:
        self.path = path
        super().__init__(path, cause)
