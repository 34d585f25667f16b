"""pyqt-changes exceptions."""


class PyQtChangesError(Exception):
    """Base class for pyqt-changes errors."""


class CallbacksConfigError(PyQtChangesError, ValueError):
    """Raised when a callback declaration cannot be normalized."""
