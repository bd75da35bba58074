"""Issuance trigger.

Hands a fully approved subject to the certificate generator. The engine
guarantees this runs at most once per subject; the trigger only makes the
handoff. Generator failures are reported, never rolled back: the committed
``artifact_issued`` flag means "issuance was triggered".
"""

import logging
from typing import TYPE_CHECKING, Optional

from clearance.core.exceptions import GenerationFailedError
from clearance.db.models import Subject
from clearance.services.dispatch import CollaboratorPool
from clearance.services.notifications import ClearanceEvent, ClearanceNotifications

if TYPE_CHECKING:
    from clearance.services.certificates import ArtifactGenerator

logger = logging.getLogger(__name__)


class IssuanceTrigger:
    """Generates the certificate and tells the subject about it."""

    def __init__(
        self,
        generator: "ArtifactGenerator",
        pool: CollaboratorPool,
        notifications: Optional[ClearanceNotifications] = None,
    ):
        self.generator = generator
        self.pool = pool
        self.notifications = notifications

    def on_fully_approved(self, subject: Subject) -> Optional[str]:
        """
        Generate the certificate for a subject that just became fully approved.

        Returns:
            The artifact reference, or None if generation failed
        """
        try:
            artifact = self.pool.call(self.generator.generate, subject)
        except GenerationFailedError as e:
            logger.error(f"Certificate generation failed for {subject.id}: {e.message} ({e.detail})")
            return None
        except TimeoutError:
            logger.error(f"Certificate generation timed out for {subject.id}")
            return None
        except Exception:
            logger.exception(f"Certificate generator raised for {subject.id}")
            return None

        logger.info(f"Certificate issued for {subject.id}: {artifact}")

        if self.notifications is not None:
            self.notifications.send(
                ClearanceEvent.CERTIFICATE_ISSUED,
                subject.contact,
                {"name": subject.name, "artifact": artifact},
            )
        return artifact
