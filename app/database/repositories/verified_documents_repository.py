from psycopg.rows import dict_row

from app.database.connection import get_connection
from app.pipeline.models import VerifiedDocumentEntry


class VerifiedDocumentsRepository:
    """Database operations for the verified_documents table (one row per user)."""

    def upsert(self, entry: VerifiedDocumentEntry) -> None:
        """Insert the entry or overwrite the user's previous one."""
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO verified_documents
                    (user_id, "documentoRgUrl", "idadeVerificada",
                     "dataNascimentoExtraida", verified_at)
                VALUES (%s, %s, %s, %s, %s)
                ON CONFLICT (user_id) DO UPDATE
                SET "documentoRgUrl" = EXCLUDED."documentoRgUrl",
                    "idadeVerificada" = EXCLUDED."idadeVerificada",
                    "dataNascimentoExtraida" = EXCLUDED."dataNascimentoExtraida",
                    verified_at = EXCLUDED.verified_at
                """,
                (
                    entry.user_id,
                    entry.storage_reference_url,
                    entry.is_adult,
                    entry.birth_date_text,
                    entry.completed_at,
                ),
            )
            conn.commit()

    def find_by_user_id(self, user_id: str) -> VerifiedDocumentEntry | None:
        with get_connection() as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT user_id, "documentoRgUrl", "idadeVerificada",
                           "dataNascimentoExtraida", verified_at
                    FROM verified_documents
                    WHERE user_id = %s
                    """,
                    (user_id,),
                )
                row = cur.fetchone()

        if row is None:
            return None

        return VerifiedDocumentEntry(
            user_id=row["user_id"],
            storage_reference_url=row["documentoRgUrl"],
            is_adult=row["idadeVerificada"],
            birth_date_text=row["dataNascimentoExtraida"],
            completed_at=row["verified_at"],
        )
