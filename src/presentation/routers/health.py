from fastapi import APIRouter
from pydantic import BaseModel

router = APIRouter()


class Ok(BaseModel):
	code: str = "ok"


@router.get("/health", response_model=Ok)
async def health():
	return Ok()
