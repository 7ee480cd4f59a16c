"""zcnotify — reports zeroconf services appearing, disappearing or changing.

Quickstart::

    import asyncio
    from zcnotify.config import ZCNotifyConfig
    from zcnotify.service import ZCNotifyService

    config = ZCNotifyConfig.load("zcnotify.toml")
    stop = asyncio.Event()
    asyncio.run(ZCNotifyService(config).run(stop))
"""

__version__ = "1.0.0"
