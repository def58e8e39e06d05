"""Request and response schemas for the backend functions."""

from pydantic import BaseModel, ConfigDict, Field

from ..storage import UserCredits


class ChatTurn(BaseModel):
    """One message of the conversation sent by the client."""

    role: str = Field(..., pattern="^(user|assistant)$")
    content: str


class ChatRequest(BaseModel):
    """Body of the health-chat function."""

    model_config = ConfigDict(populate_by_name=True)

    messages: list[ChatTurn] = Field(..., min_length=1)
    mode: str | None = None
    user_context: str | None = Field(default=None, alias="userContext")
    stream: bool = False


class ChatResponse(BaseModel):
    """Non-streamed reply of the health-chat function."""

    message: str


class SearchDiseaseRequest(BaseModel):
    """Body of the search-disease function."""

    query: str | None = None
    category: str | None = None


class ClaimCreditsResponse(BaseModel):
    """Result of the claim-daily-credits function."""

    success: bool
    credits: UserCredits
    awarded: int = 0
