"""Upfront validation of a batch of file URLs.

Runs before any network call. A batch is admitted whole or rejected whole:
every offending URL is reported with a machine-readable reason.
"""
from dataclasses import dataclass
from posixpath import splitext
from typing import Optional, Sequence
from urllib.parse import unquote, urlsplit

SUPPORTED_FILE_EXTENSIONS = frozenset({
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "csv",
    "jpg", "jpeg", "png", "gif", "bmp", "svg", "webp",
    "mp3", "mp4", "avi", "mov", "wmv",
    "zip", "rar", "tar", "gz",
})

DANGEROUS_FILE_EXTENSIONS = frozenset({
    "exe", "bat", "cmd", "sh", "php", "js", "jar", "dll", "vbs", "ps1",
})

ALLOWED_SCHEMES = ("http", "https")

# Reason codes
EMPTY = "empty"
TOO_MANY = "too_many"
INVALID_URL = "invalid_url"
MISSING_EXTENSION = "missing_extension"
DANGEROUS_EXTENSION = "dangerous_extension"
UNSUPPORTED_EXTENSION = "unsupported_extension"


@dataclass(frozen=True)
class UrlIssue:
    """One validation problem. url is None for batch-level issues."""
    url: Optional[str]
    reason: str
    message: str

    def to_dict(self) -> dict:
        return {"url": self.url, "reason": self.reason, "message": self.message}


class InvalidUploadRequest(Exception):
    """Raised when a batch fails validation. Carries every issue found."""

    def __init__(self, issues: Sequence[UrlIssue]):
        self.issues = list(issues)
        super().__init__(str(self))

    def __str__(self) -> str:
        if len(self.issues) == 1:
            return self.issues[0].message
        return f"{len(self.issues)} invalid file URLs"


def file_extension(url: str) -> str:
    """Lower-cased extension of the URL path, without the dot. '' if none."""
    path = unquote(urlsplit(url).path)
    last_segment = path.rsplit("/", 1)[-1]
    ext = splitext(last_segment)[1]
    return ext[1:].lower() if ext else ""


def check_url(url: str) -> Optional[UrlIssue]:
    """Validate a single URL. Returns None when it is acceptable."""
    if not isinstance(url, str) or not url.strip():
        return UrlIssue(url, INVALID_URL, "Each URL must be a valid HTTP or HTTPS URL")
    candidate = url.strip()
    try:
        parts = urlsplit(candidate)
        # Accessing .port validates the netloc (raises ValueError on junk)
        parts.port
    except ValueError:
        return UrlIssue(url, INVALID_URL, "Each URL must be a valid HTTP or HTTPS URL")
    if parts.scheme.lower() not in ALLOWED_SCHEMES or not parts.hostname:
        return UrlIssue(url, INVALID_URL, "Each URL must be a valid HTTP or HTTPS URL")
    if any(ch.isspace() for ch in candidate):
        return UrlIssue(url, INVALID_URL, "URL must not contain whitespace")

    ext = file_extension(candidate)
    if not ext:
        return UrlIssue(url, MISSING_EXTENSION, "URL does not point to a file with an extension")
    if ext in DANGEROUS_FILE_EXTENSIONS:
        return UrlIssue(
            url, DANGEROUS_EXTENSION,
            f'File extension "{ext}" is not allowed for security reasons',
        )
    if ext not in SUPPORTED_FILE_EXTENSIONS:
        return UrlIssue(url, UNSUPPORTED_EXTENSION, f'File extension "{ext}" is not supported')
    return None


def validate_urls(urls: Sequence[str], max_urls: int = 10) -> list[UrlIssue]:
    """Return all issues for a batch. Empty list means the batch is admissible."""
    if not urls:
        return [UrlIssue(None, EMPTY, "At least one file URL must be provided")]
    if len(urls) > max_urls:
        return [UrlIssue(None, TOO_MANY, f"Maximum {max_urls} file URLs are allowed at once")]

    issues = []
    for url in urls:
        issue = check_url(url)
        if issue:
            issues.append(issue)
    return issues


def normalize_urls(urls: Sequence[str], max_urls: int = 10) -> list[str]:
    """Validate a batch and return trimmed URLs, or raise InvalidUploadRequest."""
    issues = validate_urls(urls, max_urls=max_urls)
    if issues:
        raise InvalidUploadRequest(issues)
    return [url.strip() for url in urls]
