"""Published transit network snapshot shared by all queries."""

import asyncio
import logging
from datetime import UTC, datetime
from pathlib import Path

from journey_planner.data.config import PlannerConfig, get_config
from journey_planner.data.dataset import load_network
from journey_planner.errors import NetworkUnavailableError
from journey_planner.models.network import TransitNetwork

logger = logging.getLogger(__name__)


class NetworkStore:
    """Holds the current immutable network snapshot.

    Building happens in a worker thread into a fresh network; publishing is
    a single reference swap, so queries never see a half-built graph.
    Queries should capture the snapshot once and use it throughout.

    Usage:
        network = await NetworkStore.get_instance()  # loads on first use
        network = NetworkStore.current()  # no loading, no locking

    After dataset changes:
        await NetworkStore.reload()  # previous snapshot kept on failure
    """

    _network: TransitNetwork | None = None
    _data_dir: Path | None = None
    _loaded_at: datetime | None = None
    _lock: asyncio.Lock = asyncio.Lock()

    @classmethod
    def current(cls) -> TransitNetwork:
        """Return the published snapshot.

        Raises:
            NetworkUnavailableError: If nothing has been published yet.
        """
        network = cls._network
        if network is None:
            raise NetworkUnavailableError("Transit network has not been loaded")
        return network

    @classmethod
    def is_loaded(cls) -> bool:
        return cls._network is not None

    @classmethod
    def loaded_at(cls) -> datetime | None:
        return cls._loaded_at

    @classmethod
    def source_dir(cls) -> Path | None:
        return cls._data_dir

    @classmethod
    def publish(cls, network: TransitNetwork, data_dir: Path | None = None) -> None:
        """Make ``network`` the snapshot seen by new queries."""
        cls._network = network
        cls._data_dir = data_dir
        cls._loaded_at = datetime.now(UTC)
        logger.info(f"Published transit network: {network.stats()}")

    @classmethod
    async def _build(cls, data_dir: Path | None, config: PlannerConfig | None) -> TransitNetwork:
        config = config or get_config()
        path = Path(data_dir if data_dir is not None else config.data_dir)
        network = await asyncio.to_thread(load_network, path, config)
        cls.publish(network, path)
        return network

    @classmethod
    async def get_instance(
        cls,
        data_dir: Path | None = None,
        config: PlannerConfig | None = None,
    ) -> TransitNetwork:
        """Get the published snapshot, loading it on first use.

        Args:
            data_dir: Optional dataset directory. Uses JOURNEY_DATA_DIR if not provided.
            config: Optional planner configuration.

        Returns:
            The published TransitNetwork.
        """
        network = cls._network
        if network is not None:
            return network
        async with cls._lock:
            if cls._network is None:
                return await cls._build(data_dir, config)
            return cls._network

    @classmethod
    async def reload(
        cls,
        data_dir: Path | None = None,
        config: PlannerConfig | None = None,
    ) -> TransitNetwork:
        """Rebuild from disk and swap in the new snapshot.

        At most one reload runs at a time. If the build fails the previous
        snapshot stays published and the error is re-raised.
        """
        async with cls._lock:
            if data_dir is None:
                data_dir = cls._data_dir
            try:
                return await cls._build(data_dir, config)
            except Exception as e:
                logger.error(f"Network reload failed, keeping previous snapshot: {e}")
                raise

    @classmethod
    async def invalidate(cls) -> None:
        """Drop the published snapshot."""
        async with cls._lock:
            cls._network = None
            cls._data_dir = None
            cls._loaded_at = None
            logger.info("NetworkStore invalidated")
