class ModManagerError(Exception):
    """Base exception for all mod manager errors."""


class ModError(ModManagerError):
    """Base exception for mod-related errors."""
    default_message = "An error occurred with mod \"{mod_name}\"."

    def __init__(self, mod_name: str | None = None, message: str | None = None) -> None:
        self.mod_name = mod_name
        self.message = self.default_message.format(
            mod_name=mod_name) if not message else message
        super().__init__(self.message)


class ModNotFoundError(ModError):
    """Raised when a mod path does not resolve to a node of the mod tree."""
    default_message = "Mod \"{mod_name}\" was not found."


class ModInvalidError(ModError):
    """Raised when a directory or archive does not hold a valid mod."""
    default_message = "Mod \"{mod_name}\" is not a valid mod."


class ModManifestError(ModInvalidError):
    """Raised when mod.json is missing or cannot be parsed."""

    def __init__(self, manifest_path, reason: str) -> None:
        self.manifest_path = manifest_path
        self.reason = reason
        super().__init__(message=f"Invalid mod manifest {manifest_path}: {reason}")


class ModInstallError(ModError):
    """Raised when an error occurs during the mod installation process."""


class SettingsError(ModManagerError):
    """Raised when the mod settings file cannot be written."""


class NetworkError(ModManagerError):
    """Raised when a remote request fails or returns unusable data."""

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(f"{message} ({url})")


class OperationCancelledError(ModManagerError):
    """Raised inside a running operation once its cancel event is set."""


class ArchiveError(ModManagerError):
    """Base exception for archive-related errors."""


class UnsupportedArchiveFormatError(ArchiveError):
    """Raised when an archive format is not supported."""


class ExtractionPasswordError(ArchiveError):
    pass
