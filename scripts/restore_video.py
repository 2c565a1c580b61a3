#!/usr/bin/env python3
"""
Rebuild a watermark-free version of a video from the command line.

Runs the same workflow as the API in one go: extract the reference
frame, generate with Veo, save the result.

Usage:
    python scripts/restore_video.py input.mp4 "a red sports car on a coastal road"
    python scripts/restore_video.py input.mp4 "a cat running on grass" -o clean.mp4

Requires:
    - .env file (or environment) with GEMINI_API_KEY
    - ffmpeg and ffprobe on PATH
"""

import asyncio
import os
import sys
from pathlib import Path

# Add project root to path so we can import our modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from clearstream.api.dependencies import get_frame_extractor, get_video_generator
from clearstream.config.settings import get_settings
from clearstream.core.restoration.models import ProcessingStatus
from clearstream.core.restoration.session import RestorationSession
from clearstream.infrastructure.storage.client import create_resource_store


async def restore(input_path: Path, description: str, output_path: Path) -> bool:
    """Run extraction and generation for one file. Returns True on success."""
    settings = get_settings()
    resources = create_resource_store()

    session = RestorationSession(
        extractor=get_frame_extractor(settings),
        generator=get_video_generator(settings),
        resources=resources,
    )

    try:
        print(f"Reading {input_path}...")
        state = await session.select_file(input_path.name, "video/mp4", input_path.read_bytes())
        if state.status == ProcessingStatus.ERROR:
            print(f"ERROR: {state.error}")
            return False

        frame = session.frame
        print(f"Reference frame: {frame.width}x{frame.height} ({frame.aspect_ratio.value})")
        print("Generating clean video, this can take a few minutes...")

        state = await session.generate(description)
        if state.status == ProcessingStatus.ERROR:
            print(f"ERROR: {state.error}")
            return False

        output_path.write_bytes(resources.read(session.result_handle.id))
        print(f"Saved {output_path}")
        return True
    finally:
        session.close()


def main():
    import argparse

    parser = argparse.ArgumentParser(description='Rebuild a watermark-free video with Gemini Veo')
    parser.add_argument('input', help='MP4 video to clean')
    parser.add_argument('description', help='Short description of the video content')
    parser.add_argument('-o', '--output', default=None, help='Output path (default: download filename from settings)')
    args = parser.parse_args()

    input_path = Path(args.input)
    if not os.path.exists(input_path):
        print(f"ERROR: Cannot find {args.input}")
        sys.exit(1)

    if input_path.suffix.lower() != '.mp4':
        print("ERROR: Only MP4 files are supported")
        sys.exit(1)

    if not args.description.strip():
        print("ERROR: Please describe the video content")
        sys.exit(1)

    output_path = Path(args.output or get_settings().download_filename)

    success = asyncio.run(restore(input_path, args.description, output_path))

    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
