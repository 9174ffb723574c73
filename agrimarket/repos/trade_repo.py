# agrimarket/repos/trade_repo.py
from datetime import datetime

from sqlalchemy import select, update
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.orm.util import identity_key

from agrimarket.data.models.trade import TradeModel


class TradeRepo:
    def __init__(self, db: Session):
        self.db = db

    def get_trade(self, trade_id: int) -> TradeModel | None:
        return self.db.get(TradeModel, trade_id)

    def get_owned(self, trade_id: int, farmer_id: int) -> TradeModel | None:
        return self.db.execute(
            select(TradeModel).where(
                TradeModel.id == trade_id,
                TradeModel.farmer_id == farmer_id,
            )
        ).scalar_one_or_none()

    def _listing(self):
        return select(TradeModel).options(
            selectinload(TradeModel.product),
            selectinload(TradeModel.buyer),
            selectinload(TradeModel.farmer),
        )

    def list_by_farmer(self, farmer_id: int) -> list[TradeModel]:
        return list(
            self.db.execute(
                self._listing()
                .where(TradeModel.farmer_id == farmer_id)
                .order_by(TradeModel.created_at.desc(), TradeModel.id.desc())
            ).scalars()
        )

    def list_by_buyer(self, buyer_id: int) -> list[TradeModel]:
        return list(
            self.db.execute(
                self._listing()
                .where(TradeModel.buyer_id == buyer_id)
                .order_by(TradeModel.created_at.desc(), TradeModel.id.desc())
            ).scalars()
        )

    def list_pending_before(self, cutoff: datetime) -> list[TradeModel]:
        return list(
            self.db.execute(
                select(TradeModel).where(
                    TradeModel.status == "pending",
                    TradeModel.created_at < cutoff,
                )
            ).scalars()
        )

    def create_trade(self, trade: TradeModel) -> TradeModel:
        self.db.add(trade)
        self.db.flush()
        return trade

    def update_status(self, trade_id: int, old_status: str, new_status: str) -> int:
        # only flips the row if nobody changed the status in between
        result = self.db.execute(
            update(TradeModel)
            .where(TradeModel.id == trade_id, TradeModel.status == old_status)
            .values(status=new_status)
            .execution_options(synchronize_session=False)
        )
        self._expire_cached(trade_id)
        return result.rowcount

    def _expire_cached(self, trade_id: int) -> None:
        cached = self.db.identity_map.get(identity_key(TradeModel, trade_id))
        if cached is not None:
            self.db.expire(cached)

    def commit(self):
        self.db.commit()

    def rollback(self):
        self.db.rollback()
