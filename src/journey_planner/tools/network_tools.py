from journey_planner.app import mcp
from journey_planner.data.config import get_config
from journey_planner.data.store import NetworkStore
from journey_planner.models.responses import ReloadNetworkResponse


@mcp.tool()
async def reload_network(data_dir: str | None = None) -> ReloadNetworkResponse:
    """Rebuild the transit network from the timetable files on disk.

    Queries already running keep using the previous network. If the rebuild
    fails, the previous network stays in service.

    Args:
        data_dir: Dataset directory (default: the currently loaded one, else JOURNEY_DATA_DIR).
    """
    try:
        network = await NetworkStore.reload(data_dir)
    except Exception as e:
        target = data_dir or str(NetworkStore.source_dir() or get_config().data_dir)
        return ReloadNetworkResponse(success=False, data_dir=target, error=str(e))
    return ReloadNetworkResponse(
        success=True,
        data_dir=str(NetworkStore.source_dir()),
        stats=network.stats(),
    )
