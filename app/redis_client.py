import logging

from redis import Redis
from redis.exceptions import RedisError

from app.config import Settings, settings

LOGGER = logging.getLogger(__name__)


def create_redis_client(config: Settings = settings) -> Redis:
    return Redis(
        host=config.redis_host,
        port=config.redis_port,
        password=config.redis_password or None,
        db=config.redis_db,
        socket_connect_timeout=config.redis_connect_timeout,
        socket_timeout=config.redis_socket_timeout,
        max_connections=config.redis_pool_size,
        decode_responses=True,
    )


def connect_redis(config: Settings = settings) -> Redis | None:
    """Create a client and check the server answers.

    Returns ``None`` when Redis is disabled or unreachable so the rest of the
    API can start without session management.
    """
    if not config.redis_enabled:
        LOGGER.warning("Redis disabled, session management will be unavailable")
        return None
    client = create_redis_client(config)
    try:
        client.ping()
    except RedisError as exc:
        LOGGER.warning(
            "Redis not available at %s:%s, session management disabled: %s",
            config.redis_host,
            config.redis_port,
            exc,
        )
        client.close()
        return None
    LOGGER.info("Connected to Redis at %s:%s", config.redis_host, config.redis_port)
    return client


def ping_redis(client: Redis | None) -> bool:
    if client is None:
        return False
    try:
        return bool(client.ping())
    except RedisError:
        return False
