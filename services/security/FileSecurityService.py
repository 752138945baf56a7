"""File security checks applied before any upload."""

import random
import re
import string
import time

from shared.helper.HelperConfig import HelperConfig
from shared.models.document import FileCandidate, FileValidationResult

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB
ALLOWED_FILE_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "text/plain",
    "text/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
]
BLOCKED_EXTENSIONS = [".exe", ".bat", ".cmd", ".scr", ".vbs", ".js"]
MAX_FILE_NAME_LENGTH = 255


class FileSecurityService:
    def __init__(self, helper_config: HelperConfig) -> None:
        self.logging = helper_config.get_logger()
        self.max_file_size = int(helper_config.get_number_val("UPLOAD_MAX_FILE_SIZE", default=MAX_FILE_SIZE))
        self.allowed_types = helper_config.get_list_val("UPLOAD_ALLOWED_TYPES", default=ALLOWED_FILE_TYPES)

    def validate_file(self, candidate: FileCandidate) -> FileValidationResult:
        """Checks size, MIME type, blocked extensions and double extensions.

        Every violated rule is reported, not just the first one. A name with more
        than one "." counts as a double extension (so "v1.2.report.pdf" is rejected).

        Args:
            candidate (FileCandidate): The file to check.

        Returns:
            FileValidationResult: ``is_valid`` plus the collected error messages.
        """
        errors: list[str] = []

        if candidate.size > self.max_file_size:
            errors.append(f"File size exceeds maximum limit of {self.max_file_size // (1024 * 1024)}MB")

        if candidate.mime_type not in self.allowed_types:
            errors.append(f"File type {candidate.mime_type} is not allowed")

        file_name = candidate.name.lower()
        if any(file_name.endswith(ext) for ext in BLOCKED_EXTENSIONS):
            errors.append("File extension is not allowed for security reasons")

        if self._has_double_extension(file_name):
            errors.append("Files with double extensions are not allowed")

        if errors:
            self.logging.warning("File '%s' rejected: %s", candidate.name, "; ".join(errors))
        return FileValidationResult(is_valid=not errors, errors=errors)

    def sanitize_file_name(self, file_name: str) -> str:
        """Replaces unsafe characters with "_", collapses dot runs, drops a leading dot, caps the length."""
        sanitized = re.sub(r"[^a-zA-Z0-9.-]", "_", file_name)
        sanitized = re.sub(r"\.+", ".", sanitized)
        sanitized = re.sub(r"^\.", "", sanitized)
        return sanitized[:MAX_FILE_NAME_LENGTH]

    def generate_secure_file_name(self, original_name: str) -> str:
        """Builds "<epoch ms>_<13 random chars>.<original extension>"."""
        timestamp = int(time.time() * 1000)
        token = "".join(random.choices(string.ascii_lowercase + string.digits, k=13))
        extension = original_name.rsplit(".", 1)[-1]
        return f"{timestamp}_{token}.{self.sanitize_file_name(extension)}"

    def _has_double_extension(self, file_name: str) -> bool:
        return len(file_name.split(".")) > 2
