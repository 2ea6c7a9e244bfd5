"""Example: in-process channel/topic pub-sub with request/reply (no broker)."""

import asyncio
import logging

from channel_pubsub import Metadata, PubSub, ReplyTimeout, Subscription

logging.basicConfig(level=logging.INFO)


def on_user_created(message: dict, metadata: Metadata) -> dict:
    print(f"[{metadata.channel}/{metadata.topic}] {message}")
    return {**message, "welcomed": True}


def audit(message: dict, metadata: Metadata) -> None:
    print(f"audit {metadata.to_dict()} {message}")


async def slow_lookup(message: dict, metadata: Metadata) -> dict:
    await asyncio.sleep(1.0)
    return message


async def main() -> None:
    pubsub = PubSub({"request_reply_timeout_ms": 500})

    pubsub.subscribe(
        Subscription("users", "created", on_user_created),
        Subscription("users", "*", audit),
        Subscription("users", "deleted", audit, once=True),
    )

    pubsub.publish("users", "created", {"user_id": 101})
    pubsub.publish("users", "deleted", {"user_id": 7})
    pubsub.publish("users", "deleted", {"user_id": 8})

    reply = await pubsub.publish_and_get_reply("users", "created", {"user_id": 102})
    print(f"reply: {reply}")

    pubsub.subscribe(Subscription("orders", "lookup", slow_lookup))
    try:
        await pubsub.publish_and_get_reply("orders", "lookup", {"order_id": 1})
    except ReplyTimeout as e:
        print(f"timed out after {e.timeout_ms} ms")

    pubsub.unsubscribe_all("*", "*")
    print(pubsub.metrics().snapshot())


if __name__ == "__main__":
    asyncio.run(main())
