"""Register all marketplace adapters with the factory.

Call register_all_adapters() at startup (the CLI and the scheduler do).
"""

from typing import Iterable, Optional

import structlog

from bizscout.scrapers.factory import AdapterFactory, get_adapter_factory
from bizscout.scrapers.sites import SITE_CONFIGS, SiteConfig

logger = structlog.get_logger(__name__)


def register_all_adapters(
    factory: Optional[AdapterFactory] = None,
    sites: Optional[Iterable[SiteConfig]] = None,
) -> AdapterFactory:
    """Register every known marketplace with the factory.

    Args:
        factory: Target factory (global factory if omitted)
        sites: Site entries to register (all built-in sites if omitted)

    Returns:
        The factory, for chaining
    """
    factory = factory or get_adapter_factory()

    for site in sites if sites is not None else SITE_CONFIGS.values():
        try:
            factory.register_site(site)
        except Exception as e:
            logger.error(
                "adapter_registration_failed",
                source=site.slug,
                error=str(e),
                exc_info=True,
            )

    logger.info(
        "all_adapters_registered",
        count=len(factory.get_registered_sources()),
        sources=factory.get_registered_sources(),
    )
    return factory
