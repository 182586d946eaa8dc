"""Example: Creator session lifecycle with LiveKit media (sanitized demo).

Walks one participant through go live -> prep (preview) -> join (full media)
-> publish -> end, printing the media registry summary at each step.

Prerequisites:
    1. Install dependencies: uv sync
    2. Set environment variables in env.local (do not commit):
       LIVEKIT_URL=wss://<redacted-rtc-provider>
       LIVEKIT_TOKEN=<participant access token>

Run:
    uv run python examples/livekit_session_example.py
"""

import asyncio
import os

from fancall.domain.live.context import create_live_context, reset_live_context
from fancall.domain.live.media import PublishGuard
from fancall.services.integrations.livekit_media import LivekitDevices, LivekitTransport
from fancall.shared.log import init_logger


async def main():
    init_logger()
    token = os.environ.get("LIVEKIT_TOKEN")

    ctx = create_live_context(
        LivekitDevices(),
        transport_factory=LivekitTransport,
        participant_id="creator-demo",
        on_forced_reset=lambda summary: print(f"   forced reset: {summary.model_dump()}"),
    )
    lifecycle, registry = ctx.lifecycle, ctx.registry

    print("LiveKit Session Example")
    print("=" * 50)

    try:
        await lifecycle.go_live()
        lifecycle.enter_prep()

        print("\n1. Preview media:")
        await lifecycle.prepare_media(preview_only=True)
        print(f"   {registry.media_summary('preview').model_dump()}")

        print("\n2. Join with full media:")
        stream = await lifecycle.join()
        print(f"   {registry.media_summary('joined').model_dump()}")

        if token:
            print("\n3. Connect and publish:")
            await registry.transport.connect(token)
            published = await PublishGuard(registry.transport).publish(stream)
            print(f"   published={published}")
            lifecycle.confirm_active()
        else:
            print("\n3. LIVEKIT_TOKEN not set, skipping connect/publish")

        print("\n4. End session:")
        await lifecycle.end_session()
        print(f"   phase={lifecycle.phase} media={registry.phase}")
    except Exception as e:
        print(f"   Error: {e}")
    finally:
        await reset_live_context(ctx)


if __name__ == "__main__":
    asyncio.run(main())
