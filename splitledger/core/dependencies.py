from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.db.session import get_db
from splitledger.services.ledger_reader import LedgerReader
from splitledger.services.sql_ledger_reader import SqlLedgerReader

async def get_ledger_reader(db: AsyncSession = Depends(get_db)) -> LedgerReader:
    return SqlLedgerReader(db)
