"""File signature (magic byte) validation for uploads.

Checks that the bytes of an upload match the MIME type and extension the
client claimed, so a renamed executable cannot pass as a PDF.
"""
from dataclasses import dataclass, field
from typing import Optional

# Bytes read from the start of the file; enough for every signature below
HEADER_LENGTH = 20


@dataclass(frozen=True)
class FileSignature:
    type: str
    signatures: tuple[bytes, ...]
    offset: int
    extensions: tuple[str, ...]
    mime_types: tuple[str, ...]
    # RIFF containers share a prefix; the form type sits at byte 8
    riff_form: Optional[bytes] = None


# More specific entries come first: "ftypqt" (mov) must win over "ftyp" (mp4)
FILE_SIGNATURES: tuple[FileSignature, ...] = (
    FileSignature(
        "jpeg",
        (b"\xFF\xD8\xFF\xE0", b"\xFF\xD8\xFF\xE1", b"\xFF\xD8\xFF\xE2", b"\xFF\xD8\xFF\xE8"),
        0, ("jpg", "jpeg"), ("image/jpeg",)
    ),
    FileSignature("png", (b"\x89PNG\r\n\x1a\n",), 0, ("png",), ("image/png",)),
    FileSignature("gif", (b"GIF87a", b"GIF89a"), 0, ("gif",), ("image/gif",)),
    FileSignature("webp", (b"RIFF",), 0, ("webp",), ("image/webp",), riff_form=b"WEBP"),
    FileSignature("pdf", (b"%PDF-",), 0, ("pdf",), ("application/pdf",)),
    FileSignature(
        "zip",
        (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08"),
        0, ("zip", "epub", "jar"),
        ("application/zip", "application/epub+zip", "application/java-archive")
    ),
    FileSignature(
        "mp3",
        (b"\xFF\xFB", b"\xFF\xF3", b"\xFF\xF2", b"ID3"),
        0, ("mp3",), ("audio/mpeg", "audio/mp3")
    ),
    FileSignature(
        "wav", (b"RIFF",), 0, ("wav",),
        ("audio/wav", "audio/wave", "audio/x-wav"), riff_form=b"WAVE"
    ),
    FileSignature("mov", (b"ftypqt",), 4, ("mov",), ("video/quicktime",)),
    FileSignature("mp4", (b"ftyp",), 4, ("mp4", "m4v", "m4a"), ("video/mp4", "audio/mp4")),
)


@dataclass
class DetectedType:
    type: str
    extensions: tuple[str, ...]
    mime_types: tuple[str, ...]


@dataclass
class CheckResult:
    valid: bool
    message: str
    detected_type: Optional[str] = None


@dataclass
class FileValidationResult:
    valid: bool
    detected_type: Optional[str] = None
    errors: list[str] = field(default_factory=list)


def _matches(data: bytes, sig: FileSignature) -> bool:
    window = data[sig.offset:sig.offset + HEADER_LENGTH]
    if not any(window.startswith(s) for s in sig.signatures):
        return False
    if sig.riff_form is not None:
        return data[8:12] == sig.riff_form
    return True


def detect_file_type(data: bytes) -> Optional[DetectedType]:
    """Identify a file from its leading bytes.

    Args:
        data: File content (only the first bytes are inspected)

    Returns:
        DetectedType or None when no signature matches
    """
    for sig in FILE_SIGNATURES:
        if _matches(data, sig):
            return DetectedType(sig.type, sig.extensions, sig.mime_types)
    return None


def validate_magic_bytes(data: bytes, claimed_mime_type: str) -> CheckResult:
    """Check content against the claimed MIME type."""
    detected = detect_file_type(data)
    if detected is None:
        return CheckResult(
            False,
            "Unable to detect file type from content. File may be corrupted or unsupported."
        )

    claimed = claimed_mime_type.lower()
    if claimed not in detected.mime_types:
        return CheckResult(
            False,
            f"File content doesn't match claimed type. "
            f"Expected: {claimed_mime_type}, Detected: {detected.mime_types[0]}",
            detected.type
        )

    return CheckResult(True, "File type validated successfully", detected.type)


def validate_extension(data: bytes, filename: str) -> CheckResult:
    """Check content against the file name extension."""
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if not extension:
        return CheckResult(False, "File must have an extension")

    detected = detect_file_type(data)
    if detected is None:
        return CheckResult(False, "Unable to detect file type from content")

    if extension not in detected.extensions:
        return CheckResult(
            False,
            f"File extension doesn't match content. Extension: .{extension}, "
            f"Detected type: {detected.type} (expected: {', '.join(detected.extensions)})",
            detected.type
        )

    return CheckResult(True, "File extension validated successfully", detected.type)


def validate_file(data: bytes, mime_type: str, filename: str) -> FileValidationResult:
    """Run both the MIME and the extension check, collecting every error.

    Args:
        data: File content
        mime_type: MIME type claimed by the client
        filename: Client file name

    Returns:
        FileValidationResult with ``valid`` False when any check failed
    """
    mime_check = validate_magic_bytes(data, mime_type)
    ext_check = validate_extension(data, filename)

    errors = [check.message for check in (mime_check, ext_check) if not check.valid]
    return FileValidationResult(
        valid=not errors,
        detected_type=mime_check.detected_type or ext_check.detected_type,
        errors=errors
    )


def get_supported_file_types() -> list[dict]:
    return [
        {"type": sig.type, "extensions": list(sig.extensions), "mimeTypes": list(sig.mime_types)}
        for sig in FILE_SIGNATURES
    ]


def is_supported_mime_type(mime_type: str) -> bool:
    mime = mime_type.lower()
    return any(mime in sig.mime_types for sig in FILE_SIGNATURES)


def is_supported_extension(extension: str) -> bool:
    ext = extension.lower().lstrip(".")
    return any(ext in sig.extensions for sig in FILE_SIGNATURES)
