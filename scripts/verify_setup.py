#!/usr/bin/env python3
"""
Verify that the stitcher can run jobs on this machine.

Run with: python scripts/verify_setup.py
"""

import os
import shutil
import subprocess
import sys

# Add project root to path
PROJECT_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
sys.path.insert(0, PROJECT_ROOT)


def check(ok: bool, description: str) -> bool:
    status = "✓" if ok else "✗"
    print(f"  {status} {description}")
    return ok


def main():
    from stitcher.core import config

    print("=" * 60)
    print("Composite Stitcher Setup Verification")
    print("=" * 60)

    errors = []

    print("\n[1] FFmpeg")
    print("-" * 40)

    ffmpeg_path = shutil.which(config.FFMPEG_BINARY)
    if not check(ffmpeg_path is not None, f"Binary: {config.FFMPEG_BINARY} -> {ffmpeg_path}"):
        errors.append(f"FFmpeg: {config.FFMPEG_BINARY} not found on PATH")
    else:
        result = subprocess.run(
            [ffmpeg_path, "-hide_banner", "-encoders"], capture_output=True, text=True
        )
        for encoder in ("libx264", "aac", "pcm_s16le"):
            if not check(encoder in result.stdout, f"Encoder: {encoder}"):
                errors.append(f"FFmpeg: encoder {encoder} unavailable")

    print("\n[2] Storage")
    print("-" * 40)

    print(f"  Backend: {config.STORAGE_BACKEND}")
    if config.STORAGE_BACKEND == "local":
        os.makedirs(config.STORAGE_ROOT, exist_ok=True)
        check(True, f"Storage root: {config.STORAGE_ROOT}")
    else:
        if not check(bool(config.SUPABASE_URL), "SUPABASE_URL set"):
            errors.append("Storage: SUPABASE_URL not set")
        if not check(bool(config.SUPABASE_SERVICE_KEY), "SUPABASE_SERVICE_KEY set"):
            errors.append("Storage: SUPABASE_SERVICE_KEY not set")

    print("\n[3] Working Directory")
    print("-" * 40)

    os.makedirs(config.WORK_ROOT, exist_ok=True)
    if not check(os.access(config.WORK_ROOT, os.W_OK), f"Writable: {config.WORK_ROOT}"):
        errors.append(f"Work root not writable: {config.WORK_ROOT}")

    print("\n[4] Python Imports")
    print("-" * 40)

    try:
        from stitcher.main import app  # noqa: F401

        print("  ✓ API app import OK")
    except Exception as e:
        print(f"  ✗ API app import failed: {e}")
        errors.append(f"Import error: stitcher.main - {e}")

    try:
        from stitcher.storage import get_storage

        get_storage()
        print("  ✓ Storage client OK")
    except Exception as e:
        print(f"  ✗ Storage client failed: {e}")
        errors.append(f"Storage client - {e}")

    print("\n" + "=" * 60)

    if errors:
        print(f"VERIFICATION FAILED - {len(errors)} error(s) found:")
        print("-" * 40)
        for error in errors:
            print(f"  • {error}")
        print("\nHints:")
        print("  - Install ffmpeg with libx264 (apt install ffmpeg)")
        print("  - Set SUPABASE_URL and SUPABASE_SERVICE_KEY, or STORAGE_BACKEND=local")
        return 1
    else:
        print("✓ VERIFICATION PASSED - All checks OK!")
        return 0


if __name__ == "__main__":
    sys.exit(main())
