"""Batch validation, run before any decode work starts."""

from collections.abc import Sequence

from pydantic import ValidationError

from .common.config import MB, ResizerConfig
from .common.errors import BatchValidationError
from .common.schemas import FieldIssue, SourceFile


def issues_from_pydantic(
    exc: ValidationError,
    aliases: dict[str, str] | None = None,
) -> list[FieldIssue]:
    """Flatten a pydantic ValidationError, renaming fields through ``aliases``."""
    aliases = aliases or {}
    issues: list[FieldIssue] = []
    for error in exc.errors():
        path: list[str | int] = [
            aliases.get(part, part) if isinstance(part, str) else part for part in error["loc"]
        ]
        issues.append(FieldIssue(path=path, message=error["msg"], code=error["type"]))
    return issues


def collect_file_issues(files: Sequence[SourceFile], config: ResizerConfig) -> list[FieldIssue]:
    """Check file count, input type and per-file size against ``config`` limits."""
    if not files:
        return [
            FieldIssue(
                path=["files"],
                message="No images received. Please attach at least one file.",
                code="too_small",
            )
        ]

    issues: list[FieldIssue] = []
    if len(files) > config.max_files:
        issues.append(
            FieldIssue(
                path=["files"],
                message=f"Too many files. Max is {config.max_files} per batch.",
                code="too_big",
            )
        )

    limit_mb = config.max_file_size / MB
    for index, file in enumerate(files):
        if file.mime.lower() not in config.allowed_input_mimes:
            issues.append(
                FieldIssue(
                    path=["files", index],
                    message=f"Unsupported file type: {file.mime} ({file.name})",
                    code="invalid_type",
                )
            )
        if file.size == 0:
            issues.append(
                FieldIssue(path=["files", index], message=f"File is empty: {file.name}", code="too_small")
            )
        elif file.size > config.max_file_size:
            issues.append(
                FieldIssue(
                    path=["files", index],
                    message=f"File too large: {file.name}. Max is {limit_mb:g}MB per file.",
                    code="too_big",
                )
            )
    return issues


def validate_batch(files: Sequence[SourceFile], config: ResizerConfig) -> None:
    """
    Raises:
        BatchValidationError: Listing every problem found in ``files``
    """
    issues = collect_file_issues(files, config)
    if issues:
        raise BatchValidationError(issues)
