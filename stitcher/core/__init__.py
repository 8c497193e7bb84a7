from stitcher.core.errors import (
    AssetUnavailable,
    MetadataNotFound,
    NoFramesRecovered,
    PublishFailed,
    StitchError,
    StorageError,
    TranscodeFailed,
)

__all__ = [
    "StitchError",
    "StorageError",
    "MetadataNotFound",
    "AssetUnavailable",
    "NoFramesRecovered",
    "TranscodeFailed",
    "PublishFailed",
]
