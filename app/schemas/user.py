from pydantic import BaseModel, field_validator


class RestrictUserRequest(BaseModel):
    reason: str

    @field_validator("reason")
    @classmethod
    def reason_not_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Restriction reason is required")
        return v.strip()
