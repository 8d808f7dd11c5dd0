# airdl/core/paths.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, Tuple

from .errors import MetadataError
from .urn import ModelURN
from .utils import safe_filename

METADATA_SUFFIX = ".metadata.json"
PART_SUFFIX = ".part"
DEFAULT_EXT = "safetensors"

# AIR model type → folder name the image-generation tools look in
TYPE_DIRS: Dict[str, str] = {
    "checkpoint":   "checkpoints",
    "lora":         "loras",
    "lycoris":      "loras",
    "locon":        "loras",
    "dora":         "loras",
    "vae":          "vae",
    "embedding":    "embeddings",
    "textualinversion": "embeddings",
    "hypernetwork": "hypernetworks",
    "controlnet":   "controlnet",
    "upscaler":     "upscale_models",
    "clip":         "clip",
    "unet":         "unet",
}


def type_dir(model_type: str) -> str:
    return TYPE_DIRS.get(model_type, safe_filename(model_type))


def artifact_filename(urn: ModelURN) -> str:
    stem = f"{urn.source}_{urn.id}"
    if urn.version is not None:
        stem += f"_{urn.version}"
    if urn.layer:
        stem += f"_{urn.layer}"
    return safe_filename(f"{stem}.{urn.format or DEFAULT_EXT}")


def resolve_paths(urn: ModelURN, base_dir: Path) -> Tuple[Path, Path]:
    """
    (artifact_path, metadata_path) for a URN. Pure: nothing is created here.

    Layout: <base>/<type folder>/<ecosystem>/<source>_<id>[_<version>][_<layer>].<format>
    """
    folder = Path(base_dir) / type_dir(urn.model_type) / safe_filename(urn.ecosystem)
    artifact = folder / artifact_filename(urn)
    return artifact, metadata_path_for(artifact)


def metadata_path_for(artifact: Path) -> Path:
    return artifact.with_name(artifact.name + METADATA_SUFFIX)


def part_path_for(artifact: Path) -> Path:
    return artifact.with_name(artifact.name + PART_SUFFIX)


def artifact_path_for(metadata_path: Path) -> Path:
    name = metadata_path.name
    if not name.endswith(METADATA_SUFFIX) or len(name) == len(METADATA_SUFFIX):
        raise MetadataError(f"Metadata file name must end with '{METADATA_SUFFIX}'", metadata_path)
    return metadata_path.with_name(name[: -len(METADATA_SUFFIX)])
