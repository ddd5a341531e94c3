"""
URL configuration for the docs app.

`upload_urlpatterns` are mounted at the site root (/upload/...), the rest
under /api/.
"""
from django.urls import path
from . import views

upload_urlpatterns = [
    path('upload/initiate', views.upload_initiate, name='upload-initiate'),
    path('upload/status/<uuid:job_id>', views.upload_status, name='upload-status'),
]

urlpatterns = [
    path('documents', views.list_documents, name='documents'),
    path('documents/create', views.create_document, name='documents-create'),
    path('documents/<uuid:document_id>', views.document_detail, name='document-detail'),
    path('documents/<uuid:document_id>/highlights', views.document_highlights, name='document-highlights'),
    path('documents/<uuid:document_id>/file', views.document_file, name='document-file'),
    path('document-proxy', views.document_proxy, name='document-proxy'),
]
