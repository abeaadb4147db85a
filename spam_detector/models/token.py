from __future__ import annotations

from enum import IntEnum

from pydantic import BaseModel, Field, field_validator


class TokenStandard(IntEnum):
    ERC20 = 20
    ERC721 = 721
    ERC1155 = 1155


class CreatedContract(BaseModel):
    address: str
    deployer: str
    block_number: int
    timestamp: int

    model_config = {"frozen": True}

    @field_validator("address", "deployer")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()


class TokenContract(CreatedContract):
    standard: TokenStandard


class SimplifiedTransaction(BaseModel):
    hash: str
    from_: str = Field(alias="from")
    to: str | None = None
    sighash: str = "0x"
    block_number: int
    timestamp: int

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("from_", "to")
    @classmethod
    def _lower(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else None


class TokenTransfer(BaseModel):
    """Decoded Transfer / TransferSingle log. Batch transfers arrive pre-split."""

    contract: str
    from_: str = Field(alias="from")
    to: str
    value: int = 1
    token_id: str | None = None
    operator: str | None = None
    log_index: int = 0

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("contract", "from_", "to", "operator")
    @classmethod
    def _lower(cls, v: str | None) -> str | None:
        return v.lower() if v is not None else None


class TokenApproval(BaseModel):
    """Decoded Approval / ApprovalForAll log."""

    contract: str
    owner: str
    spender: str
    value: int | None = None
    token_id: str | None = None
    approved_for_all: bool | None = None
    log_index: int = 0

    model_config = {"frozen": True, "populate_by_name": True}

    @field_validator("contract", "owner", "spender")
    @classmethod
    def _lower(cls, v: str) -> str:
        return v.lower()


class TxEvent(BaseModel):
    transaction: SimplifiedTransaction
    transfers: list[TokenTransfer] = []
    approvals: list[TokenApproval] = []
