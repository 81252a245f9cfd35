"""Tests for folder operations."""

import pytest
from django.core.files.base import ContentFile

from server.apps.files.exceptions import ConflictError, NotFoundError
from server.apps.files.logic.file_operations import (
    FOLDER_MARKER,
    list_objects,
    upload_object,
)
from server.apps.files.logic.folder_operations import (
    create_folder,
    delete_folder,
    folder_exists,
    list_folders,
)
from server.apps.files.models import StoredObject


@pytest.mark.django_db
def test_create_folder(user, mock_s3):
    """Test an empty folder is materialised with a marker."""
    folder_path = f'{user.id}/albums'

    created = create_folder(user, folder_path)

    assert created is True
    assert folder_exists(user, folder_path)
    marker = StoredObject.objects.get(file=f'{folder_path}/{FOLDER_MARKER}')
    assert marker.size_bytes == 0


@pytest.mark.django_db
def test_create_folder_is_idempotent(user, mock_s3):
    """Test creating an existing folder does nothing."""
    folder_path = f'{user.id}/albums'
    create_folder(user, folder_path)

    assert create_folder(user, folder_path) is False
    assert StoredObject.objects.filter(user=user).count() == 1


@pytest.mark.django_db
def test_folder_marker_hidden_from_listing(user, mock_s3):
    """Test markers show up as folders, not as objects."""
    create_folder(user, f'{user.id}/albums')

    root = list_objects(user, '')
    inside = list_objects(user, 'albums')

    assert root.folders == ['albums']
    assert inside.items == []


@pytest.mark.django_db
def test_delete_empty_folder(user, mock_s3):
    """Test an empty folder is removed with its marker."""
    folder_path = f'{user.id}/albums'
    create_folder(user, folder_path)

    deleted = delete_folder(user, folder_path)

    assert deleted == 1
    assert not folder_exists(user, folder_path)


@pytest.mark.django_db
def test_delete_non_empty_folder_requires_force(user, mock_s3):
    """Test a folder holding objects is protected unless forced."""
    folder_path = f'{user.id}/albums'
    upload_object(
        user,
        f'{folder_path}/note.txt',
        ContentFile(b'note', name='note.txt'),
    )

    with pytest.raises(ConflictError):
        delete_folder(user, folder_path)

    assert delete_folder(user, folder_path, force=True) == 1
    assert not folder_exists(user, folder_path)


@pytest.mark.django_db
def test_delete_missing_folder(user, mock_s3):
    """Test deleting an absent folder."""
    with pytest.raises(NotFoundError):
        delete_folder(user, f'{user.id}/nowhere')


@pytest.mark.django_db
def test_list_folders_children_only(user, mock_s3):
    """Test listing returns direct subfolders by default."""
    root = str(user.id)
    upload_object(
        user,
        f'{root}/documents/reports/q1.txt',
        ContentFile(b'q1', name='q1.txt'),
    )
    create_folder(user, f'{root}/albums')

    folders = list_folders(user, root)

    assert [folder.path for folder in folders] == [
        f'{root}/albums',
        f'{root}/documents',
    ]
    assert [folder.name for folder in folders] == ['albums', 'documents']


@pytest.mark.django_db
def test_list_folders_recursive(user, mock_s3):
    """Test recursive listing reaches nested folders."""
    root = str(user.id)
    upload_object(
        user,
        f'{root}/documents/reports/q1.txt',
        ContentFile(b'q1', name='q1.txt'),
    )

    folders = list_folders(user, root, recursive=True)

    assert [folder.path for folder in folders] == [
        f'{root}/documents',
        f'{root}/documents/reports',
    ]
    documents = folders[0].to_dict()
    assert documents['name'] == 'documents'
    assert documents['created_at'] <= documents['updated_at']


@pytest.mark.django_db
def test_list_missing_folder_is_empty(user, mock_s3):
    """Test a folder with no objects lists nothing."""
    assert list_folders(user, f'{user.id}/nowhere') == []
