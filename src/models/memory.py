from pydantic import BaseModel


class MemoryStats(BaseModel):
    total: int = 0
    last_updated: int = 0  # epoch ms
