#!/usr/bin/env python3
"""
Run one dance-video job locally: analyze a photo, generate image variants,
pick some of them, animate them, and optionally download the clips.
"""
import argparse
import asyncio
import os
import sys

from dance_video.errors import DanceVideoError
from dance_video.kie_client import KieClient
from dance_video.kv_storage import create_kv_storage
from dance_video.media import download_file
from dance_video.models import VideoOptions
from dance_video.orchestrator import GenerationOrchestrator
from dance_video.settings import (
    ANALYZE_IMAGE_URL, DEFAULT_VIDEO_DURATION, DEFAULT_VIDEO_RESOLUTION, DIVERSE_IMAGE_COUNT, default_api_keys,
)
from dance_video.state_store import JobStateStore
from dance_video.vision import EdgeFunctionAnalyzer, OpenAIVisionAnalyzer


def parse_args(argv):
    parser = argparse.ArgumentParser(description="Turn a photo into dance videos.")
    parser.add_argument("image", help="Path to the source photo.")
    parser.add_argument("--images", type=int, default=DIVERSE_IMAGE_COUNT, help="Number of image variants to generate.")
    parser.add_argument("--select", type=int, nargs="*", help="1-based variants to animate (default: the first one).")
    parser.add_argument("--duration", default=DEFAULT_VIDEO_DURATION, help="Video duration in seconds (1-10).")
    parser.add_argument("--resolution", default=DEFAULT_VIDEO_RESOLUTION, choices=["720p", "1080p"])
    parser.add_argument("--download-dir", help="Save finished videos into this directory.")
    return parser.parse_args(argv)


async def main(argv=None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])

    store = JobStateStore(create_kv_storage())
    await store.load()
    if store.api_keys is None:
        keys = default_api_keys()
        if keys is None:
            print("❌ No Kie.ai API key configured. Set KIE_API_KEY in your .env")
            return 1
        await store.set_api_keys(keys)

    if ANALYZE_IMAGE_URL:
        analyzer = EdgeFunctionAnalyzer(ANALYZE_IMAGE_URL)
    else:
        analyzer = OpenAIVisionAnalyzer(store.api_keys.openai or "")

    orchestrator = GenerationOrchestrator(store, analyzer, KieClient())
    try:
        job = await orchestrator.generate_images(args.image, count=args.images)
        for slot in job.image_slots:
            print(f"Image {slot.index + 1}: {slot.url or 'failed - ' + (slot.error or '')}")

        picks = args.select or [1]
        urls = [job.image_slots[i - 1].url for i in picks if 0 < i <= len(job.image_slots)]
        orchestrator.select_images([u for u in urls if u])

        options = VideoOptions(duration=args.duration, resolution=args.resolution)
        job = await orchestrator.generate_videos(options)
    except DanceVideoError as e:
        print(f"❌ Generation failed: {e}")
        return 1

    for i, video in enumerate(job.videos, start=1):
        print(f"🎬 Video {i}: {video.video_url}")
        if args.download_dir:
            await download_file(video.video_url, os.path.join(args.download_dir, f"{job.id}-video-{i}.mp4"))
    if job.videos:
        print(f"\n{job.videos[0].caption}")
    print(f"✅ Job {job.id} completed and saved to history")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
