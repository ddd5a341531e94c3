"""
Document access rules.

A user may read a document they own, or one shared with a team in which
they are an ACTIVE member, as long as the share has not expired.
"""
import uuid
from typing import Optional

from django.db.models import Q
from django.utils import timezone

from .models import Document


def accessible_documents(user):
    """Queryset of every document the user can read."""
    now = timezone.now()
    shared = (
        Q(team_shares__team__members__user=user)
        & Q(team_shares__team__members__status='ACTIVE')
        & Q(team_shares__team__is_active=True)
        & (Q(team_shares__expires_at__isnull=True) | Q(team_shares__expires_at__gt=now))
    )
    return Document.objects.filter(Q(owner=user) | shared).distinct()


def get_accessible_document(user, document_id) -> Optional[Document]:
    """The document if the user may read it, else None (also for malformed ids)."""
    try:
        document_id = uuid.UUID(str(document_id))
    except ValueError:
        return None
    return accessible_documents(user).filter(id=document_id).first()


def get_owned_document(user, document_id) -> Optional[Document]:
    try:
        document_id = uuid.UUID(str(document_id))
    except ValueError:
        return None
    return Document.objects.filter(id=document_id, owner=user).first()
