"""
Error types for the files.fm uploader.

File and folder errors are recorded in the upload result where they happen;
only configuration problems and a missing upload root abort a run.
"""


class FilesFmError(Exception):
    """Base class for all uploader errors."""


class ConfigurationError(FilesFmError):
    """Credentials or the target folder identity are missing or invalid."""


class LoginError(FilesFmError):
    """The login call failed or returned an unparseable session."""


class FolderCreateError(FilesFmError):
    """Remote folder creation failed or returned a malformed payload."""


class UploadError(FilesFmError):
    """A single file upload failed."""


class TraversalError(FilesFmError):
    """A local path vanished or became unreadable during a run."""


class ListFolderError(FilesFmError):
    """A remote folder listing failed."""
