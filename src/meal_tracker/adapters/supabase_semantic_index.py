"""Supabase pgvector implementation of the semantic index."""

from dataclasses import dataclass

from supabase import Client

from meal_tracker.domain.index import IndexMatch, SemanticIndexRecord
from meal_tracker.services.semantic_index import SemanticIndex

INDEX_TABLE = "food_embeddings"
MATCH_FUNCTION = "match_food_embeddings"


@dataclass
class SupabaseSemanticIndex(SemanticIndex):
    """Semantic index stored in a pgvector table, queried through an RPC."""

    client: Client
    table: str = INDEX_TABLE
    match_function: str = MATCH_FUNCTION

    async def query(self, vector: list[float], top_k: int) -> list[IndexMatch]:
        """Return the nearest records by cosine similarity."""
        response = self.client.rpc(
            self.match_function,
            {"query_embedding": vector, "match_count": top_k},
        ).execute()
        matches = [
            IndexMatch(
                score=float(row.get("similarity") or 0.0),
                metadata=row.get("metadata") or None,
            )
            for row in response.data or []
        ]
        return sorted(matches, key=lambda match: match.score, reverse=True)

    async def upsert(self, records: list[SemanticIndexRecord]) -> int:
        """Insert or overwrite records keyed by id."""
        if not records:
            return 0
        response = (
            self.client.table(self.table)
            .upsert(
                [
                    {
                        "id": record.id,
                        "embedding": record.vector,
                        "metadata": record.metadata,
                    }
                    for record in records
                ],
                on_conflict="id",
            )
            .execute()
        )
        return len(response.data or [])
