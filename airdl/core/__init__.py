from .urn import ModelURN, parse_urn
from .paths import resolve_paths, metadata_path_for, artifact_path_for
from .metadata import ModelMetadata, load_metadata, save_metadata
from .remote import DownloadDescriptor, resolve_descriptor, register_resolver
from .download import DownloadResult, download_model, stream_to_file
from .update import UpdateResult, UpdateStatus, update_model
from .errors import (
    AirError, ParseError, InvalidPrefix, MissingField, InvalidSegment, InvalidId, InvalidVersion,
    AuthError, ModelNotFound, NetworkError, IncompleteTransfer, HashMismatch,
    StorageError, MetadataError, MetadataNotFound, CorruptMetadata,
)
from .utils import human_size, sha256_file
from .http import SESSION
from .config import load_cfg, save_cfg, config_path, resolve_token, resolve_base_dir

__all__ = [
    "ModelURN", "parse_urn",
    "resolve_paths", "metadata_path_for", "artifact_path_for",
    "ModelMetadata", "load_metadata", "save_metadata",
    "DownloadDescriptor", "resolve_descriptor", "register_resolver",
    "DownloadResult", "download_model", "stream_to_file",
    "UpdateResult", "UpdateStatus", "update_model",
    "AirError", "ParseError", "InvalidPrefix", "MissingField", "InvalidSegment", "InvalidId", "InvalidVersion",
    "AuthError", "ModelNotFound", "NetworkError", "IncompleteTransfer", "HashMismatch",
    "StorageError", "MetadataError", "MetadataNotFound", "CorruptMetadata",
    "human_size", "sha256_file",
    "SESSION",
    "load_cfg", "save_cfg", "config_path", "resolve_token", "resolve_base_dir",
    "setup_logging",
]

# ---- simple logging toggle for the package ----
import logging

def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s"
    )
    # quiet down noisy deps
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("requests").setLevel(logging.WARNING)
