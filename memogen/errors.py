"""Error hierarchy for the site generator.

Every failure raised by the pipeline derives from SiteError so callers can
catch one type.
"""


class SiteError(Exception):
    """Base error for all generator operations."""


class ConfigError(SiteError):
    """Invalid or unreadable site configuration file."""


class ScanError(SiteError):
    """Content root missing or not listable."""


class ReadError(SiteError):
    """Source document unreadable or not valid UTF-8."""


class FormatError(SiteError):
    """Source document lacks the front matter delimiters."""


class MetadataError(SiteError):
    """Front matter missing a required field or holding an invalid value."""


class RenderError(SiteError):
    """Template missing, broken, or referencing an undefined variable."""


class WriteError(SiteError):
    """Output tree could not be written."""


class WatchError(SiteError):
    """Filesystem observation could not be established or was lost."""


class ServeError(SiteError):
    """Development server could not bind its address."""
