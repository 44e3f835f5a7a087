# spud/errors.py
# Exceptions raised by the encoder, decoder and identity generator.


class SpudError(Exception):
    """Base class for every SPUD failure."""


class ValidationError(SpudError, ValueError):
    """A value or field name cannot be written."""


class RegistryExhaustedError(ValidationError):
    """All usable field-name IDs in a builder are taken."""


class IdentityError(SpudError, ValueError):
    """An ObjectId could not be generated or parsed."""


class InvalidPathError(SpudError):
    """Output directory for a .spud file does not exist."""


class DecodingError(SpudError, ValueError):
    """Malformed input; carries the byte offset and what was expected there."""

    def __init__(self, message, offset=None, expected=None, found=None):
        self.message = message
        self.offset = offset
        self.expected = expected
        self.found = found
        super().__init__(self._format())

    def _format(self):
        parts = [self.message]
        if self.offset is not None:
            parts.append(f"at offset {self.offset}")
        if self.expected is not None:
            parts.append(f"(expected {self.expected}, found {self.found})")
        return " ".join(parts)


class VersionMismatchError(DecodingError):
    """Leading bytes are not the exact supported version string."""
