# ragchat/schemas/usage.py
from pydantic import BaseModel


class UsageOut(BaseModel):
    credits: float
    total_bytes: int
    is_credit_limit_reached: bool
    is_storage_limit_reached: bool
    is_limit_reached: bool
