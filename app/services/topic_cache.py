# services/topic_cache.py
import threading
from typing import Dict, Tuple

from core.logger import logger
from integrations.sns_client import TopicGateway


class TopicArnCache:
    """
    Process-wide memo of HIT type -> SNS topic ARN.

    Topics are created lazily on the first notification for a HIT type and
    kept for the life of the process. The lookup and the create happen under
    one lock so concurrent relay workers create a type's topic exactly once.
    """

    def __init__(self):
        self._arns: Dict[Tuple[str, str], str] = {}
        self._lock = threading.Lock()

    @staticmethod
    def topic_name(prefix: str, hit_type_id: str) -> str:
        return f"{prefix}-{hit_type_id}"

    def resolve(self, hit_type_id: str, prefix: str, topics: TopicGateway) -> str:
        key = (prefix, hit_type_id)
        with self._lock:
            arn = self._arns.get(key)
            if arn is None:
                arn = topics.create_topic(self.topic_name(prefix, hit_type_id))
                self._arns[key] = arn
                logger.debug(f"Cached topic ARN for HITTypeId {hit_type_id}")
            return arn

    def clear(self) -> None:
        with self._lock:
            self._arns.clear()

    def __len__(self) -> int:
        return len(self._arns)


topic_arn_cache = TopicArnCache()
