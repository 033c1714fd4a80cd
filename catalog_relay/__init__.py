"""
Catalog Relay - forward links, signed send tokens and new-entry notifications.

Enable via config/features.yaml:
    relay:
      enabled: true
      components:
        change_poller: true
        group_send: true

Components:
- payload.py       - link -> forward payload codec
- tokens.py        - signed /send_<token> codec
- database/        - subscriber registry, catalog queries
- poller/          - cursor store and change poller
- notifications/   - caption rendering and fan-out notifier
- service.py       - main coordinator service

Quick Start:
    from catalog_relay.service import CatalogRelayService
    import asyncio

    async def main():
        service = CatalogRelayService(bot=bot, send_secret="...")
        await service.initialize()
        await service.start()

    asyncio.run(main())
"""

__version__ = '0.1.0'

__all__ = ['__version__']
