"""
Queue a sample contract for the processing worker.
Run with: python manage.py shell < scripts/queue_sample_document.py
Then:     python manage.py run_worker --once
"""
import hashlib
import os

import django
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')
django.setup()

from django.core.files.uploadedfile import SimpleUploadedFile

from apps.authn.models import User
from apps.docs.models import Document, DocumentStatus, ProcessingJob
from apps.docs.storage import get_storage

SAMPLE_EMAIL = 'sample@legiseye.local'

sample_content = (
    b"SERVICES AGREEMENT\n\n"
    b"1. The Consultant shall deliver the Services described in Schedule A.\n"
    b"2. The Client shall pay each invoice within sixty (60) days of receipt.\n"
    b"3. Either party may terminate this Agreement without notice.\n"
    b"\f"
    b"4. The Consultant indemnifies the Client against all claims, without limit.\n"
    b"5. This Agreement renews automatically for successive one-year terms.\n"
)

user = User.objects.filter(email=SAMPLE_EMAIL).first()
if user is None:
    user = User.objects.create_user(email=SAMPLE_EMAIL, password='sample-password', first_name='Sample')
print(f"Owner: {user.email} ({user.id})")

storage = get_storage()
print(f"Storage root: {storage.root}")

doc = Document.objects.create(
    owner=user,
    original_file_name='services-agreement.txt',
    file_size=len(sample_content),
    mime_type='text/plain',
    file_hash=hashlib.sha256(sample_content).hexdigest(),
    status=DocumentStatus.PROCESSING,
)
upload = SimpleUploadedFile('services-agreement.txt', sample_content, content_type='text/plain')
doc.storage_path = storage.save(str(user.id), str(doc.id), '.txt', upload)
doc.storage_url = storage.url_for(str(doc.id))
doc.save()

job = ProcessingJob.objects.create(document=doc)

print(f"\nDocument: {doc.id}")
print(f"  Status: {doc.status}")
print(f"  Storage path: {doc.storage_path}")
print(f"  File exists: {storage.exists(doc.storage_path)}")
print(f"\nJob: {job.id}")
print(f"  Status: {job.status}")
print(f"  Stage: {job.stage}")

print(f"\nDocuments owned by {user.email}: {Document.objects.filter(owner=user).count()}")
