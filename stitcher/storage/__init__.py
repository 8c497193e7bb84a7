from stitcher.storage.client import BlobStore, LocalStorage, SupabaseStorage, get_storage

__all__ = ["BlobStore", "LocalStorage", "SupabaseStorage", "get_storage"]
