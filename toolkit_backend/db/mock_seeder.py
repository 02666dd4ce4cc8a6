"""
Mock data seeder – creates sample toolkits with a few variants and some
hand-outs so the ledger has history to show.

⚠️  FOR DEVELOPMENT ONLY.
    Runs on startup only when SEED_MOCK_DATA is enabled and the inventory
    is empty.
"""
import logging

from toolkit_backend.db.database import get_db
from toolkit_backend.repositories.toolkit_repository import InventoryRepository
from toolkit_backend.schemas.toolkit import ReduceStockRequest, ToolkitCreate
from toolkit_backend.services.toolkit_service import ToolkitService

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Mock data
# ---------------------------------------------------------------------------

MOCK_TOOLKITS = [
    {
        "name": "Helmet",
        "type": "Head Protection",
        "variants": [
            {"size": "M", "color": "Yellow", "stock_count": 20},
            {"size": "L", "color": "Yellow", "stock_count": 12},
            {"size": "L", "color": "White", "stock_count": 4},
        ],
    },
    {
        "name": "Safety Gloves",
        "type": "Hand Protection",
        "variants": [
            {"size": "M", "color": "Black", "stock_count": 40, "min_stock_level": 10},
            {"size": "XL", "color": "Black", "stock_count": 8, "min_stock_level": 10},
        ],
    },
    {
        "name": "Coveralls",
        "type": "Body Protection",
        "variants": [
            {"size": "L", "color": "Navy", "stock_count": 15},
            {"size": "XXL", "color": "Orange", "stock_count": 0},
        ],
    },
    {
        "name": "Ear Plugs",
        "type": "Hearing Protection",
        "variants": [
            {"stock_count": 200, "min_stock_level": 50},
        ],
    },
]

# (toolkit name, variant index, quantity, person)
MOCK_HANDOVERS = [
    ("Helmet", 0, 3, "J. Perera"),
    ("Helmet", 1, 9, "Site B crew"),
    ("Safety Gloves", 0, 12, "Warehouse team"),
]


def seed_mock_data() -> None:
    """Insert the sample toolkits unless the inventory already has data."""
    with get_db() as conn:
        if InventoryRepository(conn).list_all():
            logger.info("Inventory not empty, skipping mock data seeding")
            return

        logger.info("Seeding mock toolkits")
        service = ToolkitService(conn)
        created = {}
        for spec in MOCK_TOOLKITS:
            for variant in spec["variants"]:
                toolkit, _ = service.add_toolkit(
                    ToolkitCreate(
                        name=spec["name"],
                        type=spec["type"],
                        reason="Opening stock",
                        updated_by="Seeder",
                        **variant,
                    )
                )
            created[spec["name"]] = toolkit

        for name, index, quantity, person in MOCK_HANDOVERS:
            toolkit = created[name]
            service.reduce_stock(
                toolkit.id,
                toolkit.variants[index].id,
                ReduceStockRequest(
                    quantity=quantity,
                    reason="Issued to site",
                    updated_by="Seeder",
                    person=person,
                ),
            )

        logger.info(
            "Mock data seeded: %s toolkits, %s hand-overs",
            len(MOCK_TOOLKITS),
            len(MOCK_HANDOVERS),
        )
