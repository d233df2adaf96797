from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

async def check_db_service(db: AsyncSession):
    try:
        await db.execute(select(1))
        return {"db": True, "message": "Database is connected"}
    except SQLAlchemyError as e:
        return {"db": False, "error": str(e)}

async def system_health():
    return {
        "status": "ok"
    }
