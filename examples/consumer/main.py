"""Terminal consumer example.

Subscribes to a running heartbeat server, prints the latest tick value
and the size of the event log after every event, and pauses for a few
seconds halfway through to show that tick ids restart after a resume.

Run with (server from examples/server must be running):
    python examples/consumer/main.py
"""

import asyncio

from sse_heartbeat import EVENTS_PATH, EventConsumer, HttpxEventSource

BASE_URL = "http://localhost:8000"


async def main() -> None:
    def subscribe() -> HttpxEventSource:
        return HttpxEventSource(BASE_URL + EVENTS_PATH)

    async with EventConsumer(subscribe) as consumer:
        for second in range(20):
            await asyncio.sleep(1)

            if second == 8:
                consumer.pause()
                print("-- paused --")
            elif second == 12:
                consumer.resume()
                print("-- resumed --")

            status = "Connected" if consumer.connected else "Disconnected"
            latest = consumer.latest_value if consumer.latest_value is not None else "-"
            print(f"[{status}] latest tick: {latest}  events cached: {len(consumer.log)}")

        print("\nEvent log (newest first):")
        for entry in consumer.log:
            print(f"  {entry.received_at} | {entry.type} {entry.payload}")


if __name__ == "__main__":
    asyncio.run(main())
