"""Import every model so they register with the shared metadata."""

from promptcollab.auth.models import User  # noqa
from promptcollab.documents.models import Document  # noqa
from promptcollab.collaboration.models import CollaborativeSession, Participant, SectionLock  # noqa
from promptcollab.history.models import DocumentVersion  # noqa
