"""Signed-request and session Pydantic schemas."""

from pydantic import BaseModel, ConfigDict, Field

from publish_stage.services.authenticator import AuthProof, TypedAuthPayload


class TypedProofFields(BaseModel):
    """Explicit fields of an EIP-712 ``Authentication`` message."""

    timestamp: int = Field(..., description="Unix time (seconds) the proof was signed at")
    nonce: str = Field(..., min_length=1, description="Single-use value chosen by the client")


class SignedRequest(BaseModel):
    """Proof of address control carried in a mutation body.

    Missing proof fields default to empty values so that they fail
    authentication (401) rather than request validation.
    """

    address: str = Field("", description="Claimed wallet address")
    signature: str = Field("", description="0x-prefixed 65-byte secp256k1 signature")
    salt: str | None = Field(
        None,
        description="Signed message: a unix timestamp or free text with an 'Issued At' line",
    )
    message: str | None = Field(None, description="Alias of salt for free-text messages")
    typed_data: TypedProofFields | None = Field(
        None,
        alias="typedData",
        description="EIP-712 fields; takes precedence over salt/message",
    )

    model_config = ConfigDict(populate_by_name=True)

    def to_proof(self) -> AuthProof:
        typed = (
            TypedAuthPayload(timestamp=self.typed_data.timestamp, nonce=self.typed_data.nonce)
            if self.typed_data is not None
            else None
        )
        return AuthProof(
            address=self.address,
            signature=self.signature,
            message=self.salt or self.message,
            typed_data=typed,
        )


class LoginResponse(BaseModel):
    """Response returned after a successful signature login."""

    token: str = Field(..., description="Bearer session token")
    address: str = Field(..., description="Lowercased authenticated address")
    expires_in: str = Field(..., alias="expiresIn", description="Human-readable token lifetime")

    model_config = ConfigDict(populate_by_name=True)
