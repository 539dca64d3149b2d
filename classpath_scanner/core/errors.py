from __future__ import annotations


class ClasspathScannerError(Exception):
    """
    Base exception for classpath scanning errors.
    """


class ConfigurationError(ClasspathScannerError):
    """
    Raised when a scanner is constructed with an invalid configuration.
    """


class ScanError(ClasspathScannerError):
    """
    Raised when a scan cannot continue, e.g. a directory root is unreadable.
    """


class ScanInProgressError(ScanError):
    """
    Raised when ``scan`` is called while the same scanner is already scanning.
    """


class ContainerError(ClasspathScannerError):
    def __init__(self, message: str, code: str) -> None:
        super().__init__(message)
        self.code = code


class RootNotFoundError(ContainerError):
    pass


class CorruptArchiveError(ContainerError):
    pass


class LoadError(ClasspathScannerError):
    """
    Raised by an inspector when a code unit cannot be located or loaded.
    """
