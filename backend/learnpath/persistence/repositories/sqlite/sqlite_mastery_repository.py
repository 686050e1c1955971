"""SQLite implementation of MasteryRepository."""
from __future__ import annotations
import json
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional

from learnpath.domain.knowledge_graph.models import ConceptMastery, LearnerProfile, WeakPoint
from learnpath.persistence.db import get_connection
from learnpath.persistence.interfaces.mastery_repository import MasteryRepository

_MASTERY_FIELDS = (
    "mastery_score",
    "confidence_score",
    "status",
    "attempts",
    "last_attempted_at",
    "completed_at",
)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_mastery(row) -> ConceptMastery:
    return ConceptMastery(
        concept_id=row["concept_id"],
        mastery_score=row["mastery_score"],
        confidence_score=row["confidence_score"],
        status=row["status"],
        attempts=row["attempts"],
        last_attempted_at=row["last_attempted_at"],
        completed_at=row["completed_at"],
        updated_at=row["updated_at"],
    )


def _row_to_profile(row) -> LearnerProfile:
    return LearnerProfile(
        id=row["id"],
        user_id=row["user_id"],
        subject=row["subject"],
        created_at=row["created_at"],
    )


class SqliteMasteryRepository(MasteryRepository):

    def __init__(self, db_path: Optional[str] = None):
        self._db_path = db_path

    def _connect(self):
        return get_connection(self._db_path)

    # ------------------------------------------------------------------
    # Profiles
    # ------------------------------------------------------------------
    def get_or_create_learner_profile(self, user_id: str, subject: str) -> LearnerProfile:
        conn = self._connect()
        try:
            conn.execute(
                """
                INSERT INTO learner_profiles (id, user_id, subject, created_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(user_id, subject) DO NOTHING
                """,
                (str(uuid.uuid4()), user_id, subject, _now_iso()),
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM learner_profiles WHERE user_id = ? AND subject = ?",
                (user_id, subject),
            ).fetchone()
        finally:
            conn.close()
        return _row_to_profile(row)

    # ------------------------------------------------------------------
    # Concept mastery
    # ------------------------------------------------------------------
    def get_concept_mastery(self, profile_id: str, concept_id: str) -> Optional[ConceptMastery]:
        conn = self._connect()
        row = conn.execute(
            "SELECT * FROM concept_mastery WHERE learner_profile_id = ? AND concept_id = ?",
            (profile_id, concept_id),
        ).fetchone()
        conn.close()
        return _row_to_mastery(row) if row else None

    def get_all_concept_masteries(self, profile_id: str) -> List[ConceptMastery]:
        conn = self._connect()
        rows = conn.execute(
            "SELECT * FROM concept_mastery WHERE learner_profile_id = ?",
            (profile_id,),
        ).fetchall()
        conn.close()
        return [_row_to_mastery(r) for r in rows]

    def upsert_concept_mastery(self, profile_id: str, concept_id: str, **fields: Any) -> ConceptMastery:
        unknown = set(fields) - set(_MASTERY_FIELDS)
        if unknown:
            raise ValueError(f"Unknown concept_mastery fields: {sorted(unknown)}")

        values = {
            "learner_profile_id": profile_id,
            "concept_id": concept_id,
            "mastery_score": 0.0,
            "confidence_score": 0.0,
            "status": "locked",
            "attempts": 0,
            "last_attempted_at": None,
            "completed_at": None,
            "updated_at": _now_iso(),
        }
        values.update(fields)
        # Only the columns the caller supplied are overwritten on conflict
        assignments = ",\n                ".join(
            f"{name} = excluded.{name}" for name in list(fields) + ["updated_at"]
        )

        conn = self._connect()
        try:
            conn.execute(
                f"""
                INSERT INTO concept_mastery (
                    learner_profile_id, concept_id, mastery_score, confidence_score,
                    status, attempts, last_attempted_at, completed_at, updated_at
                ) VALUES (
                    :learner_profile_id, :concept_id, :mastery_score, :confidence_score,
                    :status, :attempts, :last_attempted_at, :completed_at, :updated_at
                )
                ON CONFLICT(learner_profile_id, concept_id) DO UPDATE SET
                {assignments}
                """,
                values,
            )
            conn.commit()
            row = conn.execute(
                "SELECT * FROM concept_mastery WHERE learner_profile_id = ? AND concept_id = ?",
                (profile_id, concept_id),
            ).fetchone()
        finally:
            conn.close()
        return _row_to_mastery(row)

    # ------------------------------------------------------------------
    # Weak points
    # ------------------------------------------------------------------
    def save_weak_point(self, profile_id: str, weak_point: WeakPoint, remediation_triggered: bool) -> str:
        weak_point_id = str(uuid.uuid4())
        conn = self._connect()
        conn.execute(
            """
            INSERT INTO weak_points (
                id, learner_profile_id, concept_id, weakness_type, severity,
                root_cause, related_concepts, remediation_triggered, detected_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                weak_point_id,
                profile_id,
                weak_point.concept_id,
                weak_point.weakness_type,
                weak_point.severity,
                weak_point.root_cause,
                json.dumps(weak_point.related_concepts),
                int(remediation_triggered),
                _now_iso(),
            ),
        )
        conn.commit()
        conn.close()
        return weak_point_id

    def list_weak_points(self, profile_id: str) -> List[dict]:
        conn = self._connect()
        rows = conn.execute(
            "SELECT * FROM weak_points WHERE learner_profile_id = ? ORDER BY detected_at DESC",
            (profile_id,),
        ).fetchall()
        conn.close()
        results = []
        for r in rows:
            item = dict(r)
            item["related_concepts"] = json.loads(item["related_concepts"] or "[]")
            item["remediation_triggered"] = bool(item["remediation_triggered"])
            results.append(item)
        return results

    # ------------------------------------------------------------------
    # Checkpoints
    # ------------------------------------------------------------------
    def save_checkpoint_response(
        self,
        profile_id: str,
        concept_id: str,
        checkpoint_index: int,
        response_text: Optional[str],
        understanding_score: float,
    ) -> str:
        response_id = str(uuid.uuid4())
        conn = self._connect()
        conn.execute(
            """
            INSERT INTO checkpoint_responses (
                id, learner_profile_id, concept_id, checkpoint_index,
                response_text, understanding_score, created_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?)
            """,
            (response_id, profile_id, concept_id, checkpoint_index, response_text, understanding_score, _now_iso()),
        )
        conn.commit()
        conn.close()
        return response_id

    def get_checkpoint_scores(self, profile_id: str, concept_id: str) -> List[float]:
        conn = self._connect()
        rows = conn.execute(
            """
            SELECT understanding_score FROM checkpoint_responses
            WHERE learner_profile_id = ? AND concept_id = ?
            ORDER BY created_at ASC, rowid ASC
            """,
            (profile_id, concept_id),
        ).fetchall()
        conn.close()
        return [r[0] for r in rows if r[0] is not None]
