"""
Team collaboration URL routes (mounted under /api/).
"""
from django.urls import path

from . import views

urlpatterns = [
    path('teams', views.TeamsView.as_view(), name='teams'),
    path('teams/invitations/accept', views.accept_invitation, name='team-invitation-accept'),
    path('teams/invitations/decline', views.decline_invitation, name='team-invitation-decline'),
    path('teams/invitations/<str:token>', views.invitation_by_token, name='team-invitation-token'),
    path('teams/<uuid:team_id>', views.TeamDetailView.as_view(), name='team-detail'),
    path('teams/<uuid:team_id>/analytics', views.team_analytics, name='team-analytics'),
    path('teams/<uuid:team_id>/members', views.TeamMembersView.as_view(), name='team-members'),
    path(
        'teams/<uuid:team_id>/members/<uuid:member_id>',
        views.TeamMemberDetailView.as_view(),
        name='team-member-detail',
    ),
    path('teams/<uuid:team_id>/invitations', views.TeamInvitationsView.as_view(), name='team-invitations'),
    path(
        'teams/<uuid:team_id>/invitations/<uuid:invitation_id>/resend',
        views.resend_invitation,
        name='team-invitation-resend',
    ),
    path('teams/<uuid:team_id>/documents', views.TeamDocumentsView.as_view(), name='team-documents'),
    path(
        'teams/<uuid:team_id>/documents/<uuid:team_document_id>/comments',
        views.TeamDocumentCommentsView.as_view(),
        name='team-document-comments',
    ),
]
