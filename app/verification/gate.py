from app.logging.logger import Log
from app.pipeline.exceptions import UnderageRejectionError
from app.pipeline.models import LEGAL_AGE, AgeVerification


class VerificationGate:
    """Single authorization checkpoint between age resolution and storage."""

    def check(self, verification: AgeVerification) -> None:
        """Let adults through.

        Raises:
            UnderageRejectionError: if the holder is younger than LEGAL_AGE.
        """
        if not verification.is_adult:
            Log.info(
                "Gate rejected document", age=verification.age, minimum_age=LEGAL_AGE
            )
            raise UnderageRejectionError(
                f"Verification failed: holder is {verification.age}, "
                f"minimum age is {LEGAL_AGE}"
            )
        Log.info("Gate passed", age=verification.age)
