# storefront/data/seed.py
from storefront.data.database import SessionLocal, init_db, with_transaction
from storefront.data.models.product import ProductModel
from storefront.data.models.user import UserModel
from storefront.services.inventory_ledger import InventoryLedger
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

PRODUCTS = [
    # sku, name, unit, price_cents, stock, low_threshold
    ("GLV-NIT-M", "Nitrile gloves, medium (box of 100)", "box", 1299, 200, 20),
    ("MSK-N95", "N95 respirator (box of 20)", "box", 3499, 80, 10),
    ("SAN-500", "Hand sanitizer 500 ml", "bottle", 599, 150, 15),
    ("GWN-ISO-L", "Isolation gown, large", "each", 450, 300, 30),
    ("WIP-DIS", "Disinfecting wipes (160 ct)", "tub", 899, 120, 12),
]


def seed(admin_external_id: str = "admin"):
    db = SessionLocal()
    try:
        # not forcing: only seed if empty
        if db.query(ProductModel).first():
            logger.info("Catalog already seeded, skipping")
            return

        def _seed(db):
            ledger = InventoryLedger(db)
            for sku, name, unit, price, stock, low in PRODUCTS:
                product = ProductModel(sku=sku, name=name, unit=unit, price_cents=price, low_threshold=low)
                db.add(product)
                db.flush()
                ledger.set_quantity(product.id, stock)

            if not db.query(UserModel).filter(UserModel.external_id == admin_external_id).first():
                db.add(UserModel(external_id=admin_external_id, role="ADMIN"))

        with_transaction(db, _seed)
        logger.info(f"Seeded {len(PRODUCTS)} products and admin {admin_external_id}")
    finally:
        db.close()


if __name__ == "__main__":
    init_db()
    seed()
