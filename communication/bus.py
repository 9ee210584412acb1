import asyncio
import time
from internal.logging import get_logger

TOPIC_FRAME = "frame"
TOPIC_EVENT = "event"

class Subscriber:
    __slots__ = ("name", "queue", "topics", "latest_only", "created_at", "received", "dropped")

    def __init__(self, name, queue, topics=None, latest_only=False):
        self.name = name
        self.queue = queue
        self.topics = topics or set()
        self.latest_only = latest_only
        self.created_at = time.time()
        self.received = 0
        self.dropped = 0

    def wants(self, topic):
        return not self.topics or topic in self.topics

    def offer(self, item):
        """Queue item; returns False if something was dropped to make (or for lack of) room."""
        try:
            self.queue.put_nowait(item)
            self.received += 1
            return True
        except asyncio.QueueFull:
            pass
        self.dropped += 1
        if not self.latest_only:
            return False
        # Live viewers only care about the freshest frame: evict the oldest and retry
        try:
            self.queue.get_nowait()
            self.queue.put_nowait(item)
            self.received += 1
        except (asyncio.QueueEmpty, asyncio.QueueFull):
            pass
        return False

class FrameBus:
    """Fan-out of frame snapshots and effect events.

    Copy-on-write subscriber list: subscribe/unsubscribe take the lock,
    publish iterates a snapshot without it.
    """

    def __init__(self, queue_size=50):
        self._lock = asyncio.Lock()
        self._subscribers = {}
        self._subscribers_snapshot = []
        self._queue_size = queue_size
        self._log = get_logger("bus")
        self.total_published = 0
        self.total_delivered = 0
        self.total_dropped = 0

    async def subscribe(self, name, max_queue_size=None, topics=None, latest_only=False):
        async with self._lock:
            if name in self._subscribers:
                return self._subscribers[name]
            subscriber = Subscriber(name, asyncio.Queue(maxsize=max_queue_size or self._queue_size),
                                    set(topics) if topics else set(), latest_only)
            self._subscribers[name] = subscriber
            self._subscribers_snapshot = list(self._subscribers.values())
            self._log.info("subscribed", subscriber=name, topics=sorted(subscriber.topics))
            return subscriber

    async def unsubscribe(self, name):
        async with self._lock:
            if name not in self._subscribers:
                return False
            del self._subscribers[name]
            self._subscribers_snapshot = list(self._subscribers.values())
            self._log.info("unsubscribed", subscriber=name)
            return True

    async def publish(self, item, topic=TOPIC_EVENT):
        """Deliver to every matching subscriber; returns how many accepted without loss."""
        delivered = dropped = 0
        for subscriber in self._subscribers_snapshot:
            if not subscriber.wants(topic):
                continue
            if subscriber.offer(item):
                delivered += 1
            else:
                dropped += 1
        self.total_published += 1
        self.total_delivered += delivered
        self.total_dropped += dropped
        return delivered

    def get_stats(self):
        return {
            "subscriber_count": len(self._subscribers_snapshot),
            "total_published": self.total_published,
            "total_delivered": self.total_delivered,
            "total_dropped": self.total_dropped
        }

    async def get_subscriber_info(self):
        return [
            {   "name": subscriber.name,
                "topics": sorted(subscriber.topics),
                "latest_only": subscriber.latest_only,
                "queued": subscriber.queue.qsize(),
                "received": subscriber.received,
                "dropped": subscriber.dropped
            } for subscriber in self._subscribers_snapshot
        ]
