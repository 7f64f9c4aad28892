"""Integration tests for FileUploadBehavior on a real database."""
from __future__ import annotations

import logging

import pytest
from sqlalchemy import select

from upload_behaviors.core.exceptions import StorageException
from tests.factories import PostFactory, make_upload
from tests.models import Post, post_attachment


async def _reload(session_factory, post_id: int) -> Post:
    async with session_factory() as session:
        result = await session.execute(select(Post).where(Post.id == post_id))
        return result.scalar_one()


@pytest.mark.asyncio
class TestFileUploadBehavior:
    """Test storing attachments through ORM saves."""
    
    async def test_insert_stores_file_and_path(self, db_session, session_factory, web_root):
        """Test saving a new record writes the upload and records its path."""
        post = PostFactory.create(attachment=make_upload("Report.TXT", b"first"))
        db_session.add(post)
        await db_session.commit()
        
        expected = f"/uploads/post/attachment/{post.id}-hello-world.txt"
        assert post.attachment == expected
        assert (web_root / expected.lstrip("/")).read_bytes() == b"first"
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment == expected
    
    async def test_record_without_upload_is_untouched(self, db_session, web_root):
        """Test saving a record without an upload writes nothing."""
        post = PostFactory.create()
        db_session.add(post)
        await db_session.commit()
        
        assert post.attachment is None
        assert not any(web_root.rglob("*.*"))
    
    async def test_replacing_upload_removes_old_file(self, db_session, session_factory, web_root):
        """Test a new upload replaces the previous file."""
        post = PostFactory.create(attachment=make_upload("report.txt", b"old"))
        db_session.add(post)
        await db_session.commit()
        old_file = web_root / post.attachment.lstrip("/")
        
        post.attachment = make_upload("report.pdf", b"new")
        await db_session.commit()
        
        new_file = web_root / post.attachment.lstrip("/")
        assert post.attachment.endswith(f"/{post.id}-hello-world.pdf")
        assert not old_file.exists()
        assert new_file.read_bytes() == b"new"
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment == post.attachment
    
    async def test_replacing_upload_uses_previous_values_for_old_path(self, db_session, web_root):
        """Test the old file is found even when the name columns change too."""
        post = PostFactory.create(title="First", attachment=make_upload("a.txt"))
        db_session.add(post)
        await db_session.commit()
        old_file = web_root / post.attachment.lstrip("/")
        
        post.title = "Second"
        post.attachment = make_upload("b.txt")
        await db_session.commit()
        
        assert not old_file.exists()
        assert post.attachment == f"/uploads/post/attachment/{post.id}-second.txt"
        assert (web_root / post.attachment.lstrip("/")).exists()
    
    async def test_attribute_changes_only_through_uploads(self, db_session, session_factory, web_root):
        """Test assigning a plain value keeps the stored path."""
        post = PostFactory.create(attachment=make_upload())
        db_session.add(post)
        await db_session.commit()
        original = post.attachment
        
        post.attachment = "../../etc/passwd"
        await db_session.commit()
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment == original
        assert (web_root / original.lstrip("/")).exists()
    
    async def test_delete_removes_file(self, db_session, web_root):
        """Test deleting the record deletes its file."""
        post = PostFactory.create(attachment=make_upload())
        db_session.add(post)
        await db_session.commit()
        stored_file = web_root / post.attachment.lstrip("/")
        assert stored_file.exists()
        
        await db_session.delete(post)
        await db_session.commit()
        
        assert not stored_file.exists()
    
    async def test_delete_with_missing_file(self, db_session):
        """Test deleting a record whose file is already gone."""
        post = PostFactory.create(attachment=make_upload())
        db_session.add(post)
        await db_session.commit()
        post_attachment.storage.absolute(post.attachment).unlink()
        
        await db_session.delete(post)
        await db_session.commit()
    
    async def test_suspended_events_keep_file_on_delete(self, db_session, web_root):
        """Test the re-entrancy guard turns hooks off for a record."""
        post = PostFactory.create(attachment=make_upload())
        db_session.add(post)
        await db_session.commit()
        stored_file = web_root / post.attachment.lstrip("/")
        
        with post_attachment.events_suspended(post):
            await db_session.delete(post)
            await db_session.commit()
        
        assert stored_file.exists()
    
    async def test_file_save_listener_runs_after_path_is_stored(self, db_session):
        """Test after-file-save listeners see the final path."""
        seen = []
        listener = lambda record: seen.append(record.attachment)
        post_attachment.add_file_save_listener(listener)
        try:
            post = PostFactory.create(attachment=make_upload())
            db_session.add(post)
            await db_session.commit()
        finally:
            post_attachment.remove_file_save_listener(listener)
        
        assert seen == [post.attachment]
    
    async def test_storage_failure_aborts_save(self, db_session, session_factory, monkeypatch):
        """Test a failed write raises and rolls the insert back."""
        def fail(upload, path):
            raise StorageException(f"Failed to save upload {path}: disk full")
        
        monkeypatch.setattr(post_attachment.storage, "save_upload", fail)
        db_session.add(PostFactory.create(attachment=make_upload()))
        
        with pytest.raises(StorageException):
            await db_session.commit()
        await db_session.rollback()
        
        async with session_factory() as session:
            result = await session.execute(select(Post))
            assert result.scalars().all() == []
    
    async def test_withdrawn_upload_on_new_record(self, db_session, session_factory, web_root):
        """Test an upload replaced by None before the first save is not written."""
        post = PostFactory.create(attachment=make_upload("a.txt"))
        post.attachment = None
        db_session.add(post)
        await db_session.commit()
        
        assert post.attachment is None
        assert list(web_root.rglob("*.txt")) == []
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment is None
    
    async def test_withdrawn_upload_keeps_stored_file(self, db_session, session_factory, web_root):
        """Test cancelling a replacement upload keeps the current file."""
        post = PostFactory.create(attachment=make_upload("report.txt", b"kept"))
        db_session.add(post)
        await db_session.commit()
        original = post.attachment
        
        post.attachment = make_upload("report.pdf", b"withdrawn")
        post.attachment = None
        await db_session.commit()
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment == original
        assert (web_root / original.lstrip("/")).read_bytes() == b"kept"
        assert list(web_root.rglob("*.pdf")) == []
    
    async def test_upload_reverted_to_stored_path(self, db_session, session_factory, web_root):
        """Test assigning the stored path back over an upload writes nothing."""
        post = PostFactory.create(attachment=make_upload("report.txt", b"kept"))
        db_session.add(post)
        await db_session.commit()
        original = post.attachment
        
        post.attachment = make_upload("report.pdf", b"withdrawn")
        post.attachment = original
        post.title = "Renamed"
        await db_session.commit()
        
        stored = await _reload(session_factory, post.id)
        assert stored.attachment == original
        assert stored.title == "Renamed"
        assert (web_root / original.lstrip("/")).read_bytes() == b"kept"
        assert list(web_root.rglob("*.pdf")) == []
    
    async def test_dotfile_upload_keeps_extension(self, db_session, web_root):
        """Test a name made only of an extension keeps it on disk."""
        post = PostFactory.create(attachment=make_upload(".htaccess", b"deny"))
        db_session.add(post)
        await db_session.commit()
        
        assert post.attachment == f"/uploads/post/attachment/{post.id}-hello-world.htaccess"
        assert (web_root / post.attachment.lstrip("/")).read_bytes() == b"deny"
    
    async def test_file_write_is_logged_at_debug(self, db_session, caplog):
        """Test routine file writes stay out of INFO logs."""
        caplog.set_level(logging.DEBUG, logger="upload_behaviors.behaviors.file_upload")
        post = PostFactory.create(attachment=make_upload("notes.txt"))
        db_session.add(post)
        await db_session.commit()
        
        stored = [r for r in caplog.records if r.getMessage().startswith("Stored notes.txt")]
        assert len(stored) == 1
        assert stored[0].levelno == logging.DEBUG
