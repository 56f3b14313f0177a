"""Provider catalog: destination tools and their artifact locations."""

from portable_installer.providers.base import (
    ConversionFormat,
    JsonMerge,
    MergeSingle,
    PathConfig,
    PerFile,
    ProviderCatalog,
    ProviderConfig,
    SingleFile,
    SubagentSupport,
    WriteStrategy,
    YamlMerge,
)
from portable_installer.providers.catalog import (
    PROVIDERS,
    detect_installed_providers,
    get_install_path,
    get_path_config,
    get_provider,
    providers_supporting,
)

__all__ = [
    "PROVIDERS",
    "ConversionFormat",
    "JsonMerge",
    "MergeSingle",
    "PathConfig",
    "PerFile",
    "ProviderCatalog",
    "ProviderConfig",
    "SingleFile",
    "SubagentSupport",
    "WriteStrategy",
    "YamlMerge",
    "detect_installed_providers",
    "get_install_path",
    "get_path_config",
    "get_provider",
    "providers_supporting",
]
