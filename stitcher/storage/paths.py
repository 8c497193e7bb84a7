"""
Deterministic blob paths for a session.

Layout inside the bucket:
    metadata/<session>/final_stats.json      # recording stats (input)
    metadata/<session>/completion.json       # success document
    metadata/<session>/error.json            # failure document
    <video_folder>/<session>/frame_00001.jpg
    <audio_folder>/<session>/audio_chunk_1.wav
    <output_folder>/<session>/final.mp4
"""

METADATA_FOLDER = "metadata"


def stats_path(session_id: str) -> str:
    return f"{METADATA_FOLDER}/{session_id}/final_stats.json"


def completion_path(session_id: str) -> str:
    return f"{METADATA_FOLDER}/{session_id}/completion.json"


def error_path(session_id: str) -> str:
    return f"{METADATA_FOLDER}/{session_id}/error.json"


def frame_name(index: int) -> str:
    return f"frame_{index:05d}.jpg"


def frame_path(video_folder: str, session_id: str, index: int) -> str:
    """Remote path of the 1-based frame ``index``."""
    return f"{video_folder}/{session_id}/{frame_name(index)}"


def audio_chunk_name(index: int) -> str:
    return f"audio_chunk_{index}.wav"


def audio_chunk_path(audio_folder: str, session_id: str, index: int) -> str:
    """Remote path of the 1-based audio chunk ``index``."""
    return f"{audio_folder}/{session_id}/{audio_chunk_name(index)}"


def output_path(output_folder: str, session_id: str) -> str:
    return f"{output_folder}/{session_id}/final.mp4"
