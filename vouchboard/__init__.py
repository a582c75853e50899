"""
Vouchboard — Vouches, Leaderboard and Catalog for a Discord Community
=======================================================================
Members sign in with Discord, post vouches about vendors they traded with,
and browse a leaderboard.  Admins (guild members holding the Administrator
permission) curate the vendor/item/payment lists and the product catalog.

Package layout::

    vouchboard/
    ├── config.py          # config.yaml + env → typed config
    ├── errors.py          # Error taxonomy → HTTP status
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # guild_records + oauth_states tables
    │   └── store.py       # Per-guild locked read-modify-write
    ├── engine/
    │   ├── records.py     # GuildRecord / Vouch / Product dataclasses
    │   ├── events.py      # VouchEvent handed to the relay
    │   ├── vouches.py     # Resequencing + leaderboard (pure)
    │   └── products.py    # Product id assignment + repair (pure)
    ├── services/
    │   ├── vouch_service.py       # Vouch create/delete/list
    │   ├── reference_service.py   # Vendors, items, payments
    │   ├── product_service.py     # Catalog CRUD + repair
    │   ├── upload_service.py      # Product image files
    │   ├── notification_service.py # Webhook + sibling fan-out
    │   └── embeds.py              # Discord embed builders
    ├── maintenance.py     # python -m vouchboard.maintenance
    └── api/
        ├── main.py        # FastAPI app
        ├── auth.py        # Discord OAuth2 login routes
        ├── identity.py    # Principal, admin bit, signed token
        ├── deps.py        # Guards + dependency providers
        └── routes/        # Vouch, config, product and page endpoints
"""

__version__ = "0.1.0"
