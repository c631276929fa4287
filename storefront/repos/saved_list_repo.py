from sqlalchemy import select
from sqlalchemy.orm import Session

from storefront.data.models.saved_list import SavedListModel, SavedListItemModel


class SavedListRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_list(self, list_id: int) -> SavedListModel | None:
        return self.db.get(SavedListModel, list_id)

    def list_for_buyer(self, buyer_id: int) -> list[SavedListModel]:
        return list(
            self.db.execute(
                select(SavedListModel)
                .where(SavedListModel.buyer_id == buyer_id)
                .order_by(SavedListModel.created_at.desc(), SavedListModel.id.desc())
            ).scalars()
        )

    def add_list(self, saved_list: SavedListModel) -> SavedListModel:
        self.db.add(saved_list)
        self.db.flush()
        return saved_list

    def delete_list(self, saved_list: SavedListModel) -> None:
        self.db.delete(saved_list)
        self.db.flush()

    def get_item(self, saved_list: SavedListModel, product_id: int) -> SavedListItemModel | None:
        return next((i for i in saved_list.items if i.product_id == product_id), None)

    def add_item(self, saved_list: SavedListModel, item: SavedListItemModel) -> SavedListItemModel:
        saved_list.items.append(item)
        self.db.flush()
        return item

    def delete_item(self, saved_list: SavedListModel, item: SavedListItemModel) -> None:
        saved_list.items.remove(item)
        self.db.flush()
