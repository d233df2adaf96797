from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession
from splitledger.services.system_services import check_db_service, system_health
from splitledger.db.session import get_db

router = APIRouter()

@router.get("/health/db")
async def check_db(db: AsyncSession = Depends(get_db)):
    return await check_db_service(db)

@router.get("/health")
async def health():
    return await system_health()
