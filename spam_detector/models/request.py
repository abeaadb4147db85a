from pydantic import BaseModel, Field

from spam_detector.models.token import CreatedContract, TokenStandard


class AddTokenRequest(CreatedContract):
    # Skips identification when the caller already knows the standard
    standard: TokenStandard | None = None


class BlockRequest(BaseModel):
    timestamp: int = Field(ge=0)
    block_number: int = Field(ge=0, alias="blockNumber")

    model_config = {"populate_by_name": True}
