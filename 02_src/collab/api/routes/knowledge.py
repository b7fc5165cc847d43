"""Knowledge base API routes."""

from pydantic import BaseModel, Field
from fastapi import APIRouter, HTTPException, Query

from ...app import IApplication
from ...knowledge import Document


class DocumentRequest(BaseModel):
    content: str = Field(..., min_length=1)
    source: str = "api"


class AddDocumentsRequest(BaseModel):
    """Request model for indexing documents."""

    documents: list[DocumentRequest] = Field(..., min_length=1)


class AddDocumentsResponse(BaseModel):
    added: int
    total: int


class DocumentResponse(BaseModel):
    id: str
    source: str
    content: str


def create_knowledge_router(app: IApplication) -> APIRouter:
    """Create knowledge router."""
    router = APIRouter(prefix="/api/knowledge", tags=["knowledge"])

    @router.post("/documents", response_model=AddDocumentsResponse)
    async def add_documents(request: AddDocumentsRequest) -> dict:
        """Index documents for worker prompts."""
        try:
            knowledge = app.knowledge
        except RuntimeError as e:
            raise HTTPException(status_code=503, detail=str(e))

        added = await knowledge.add_documents(
            [Document(content=d.content, source=d.source) for d in request.documents]
        )
        return {"added": added, "total": await knowledge.count()}

    @router.get("/search", response_model=list[DocumentResponse])
    async def search(
        q: str = Query(..., min_length=1),
        limit: int = Query(default=3, ge=1, le=50),
    ) -> list[dict]:
        """Best matching documents for a query."""
        try:
            knowledge = app.knowledge
        except RuntimeError as e:
            raise HTTPException(status_code=503, detail=str(e))

        documents = await knowledge.search(q, limit=limit)
        return [{"id": d.id, "source": d.source, "content": d.content} for d in documents]

    return router
