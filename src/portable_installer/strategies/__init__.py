"""Write strategies: how converted items are placed on disk."""

from portable_installer.providers.base import (
    JsonMerge,
    MergeSingle,
    PerFile,
    SingleFile,
    WriteStrategy,
    YamlMerge,
)
from portable_installer.strategies.base import (
    InstallStrategy,
    SharedTargetInstaller,
    StrategyContext,
)
from portable_installer.strategies.json_merge import JsonMergeInstaller
from portable_installer.strategies.merge_single import MergeSingleInstaller
from portable_installer.strategies.per_file import PerFileInstaller, SingleFileInstaller
from portable_installer.strategies.yaml_merge import YamlMergeInstaller

# Strategy variant to handler
STRATEGY_HANDLERS: dict[type, InstallStrategy] = {
    PerFile: PerFileInstaller(),
    SingleFile: SingleFileInstaller(),
    MergeSingle: MergeSingleInstaller(),
    YamlMerge: YamlMergeInstaller(),
    JsonMerge: JsonMergeInstaller(),
}


def get_strategy_handler(strategy: WriteStrategy) -> InstallStrategy:
    """Get the handler for a write-strategy variant.

    Raises:
        ValueError: If the variant has no registered handler.
    """
    handler = STRATEGY_HANDLERS.get(type(strategy))
    if handler is None:
        raise ValueError(f"Unknown write strategy: {strategy!r}")
    return handler


__all__ = [
    "InstallStrategy",
    "JsonMergeInstaller",
    "MergeSingleInstaller",
    "PerFileInstaller",
    "STRATEGY_HANDLERS",
    "SharedTargetInstaller",
    "SingleFileInstaller",
    "StrategyContext",
    "YamlMergeInstaller",
    "get_strategy_handler",
]
