"""
Team collaboration: teams, roles, invitations and shared documents.
"""
