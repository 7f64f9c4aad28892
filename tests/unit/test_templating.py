"""Unit tests for path and file name templates."""
from __future__ import annotations

from pathlib import Path

import pytest

from upload_behaviors.utils.templating import (
    absolute_path,
    lcfirst,
    normalize_path,
    resolve_directory,
    resolve_file_name,
    resolve_path,
    slugify,
    split_extension,
    thumb_path,
)


class TestSlugify:
    """Test slugify."""
    
    @pytest.mark.parametrize("value, expected", [
        ("Hello World!", "hello-world"),
        ("--Already-Dashed--", "already-dashed"),
        ("Ünïcode & more", "n-code-more"),
        (42, "42"),
        (None, ""),
        ("../../etc/passwd", "etc-passwd"),
    ])
    def test_slugify(self, value, expected):
        assert slugify(value) == expected


class TestResolveFileName:
    """Test resolve_file_name."""
    
    def test_replaces_known_tokens(self):
        values = {"id": 7, "title": "My First Post"}
        assert resolve_file_name("{id}-{title}", values) == "7-my-first-post"
    
    def test_leaves_unknown_tokens(self):
        assert resolve_file_name("{id}-{missing}", {"id": 1}) == "1-{missing}"
    
    def test_substituted_text_is_not_rescanned(self):
        values = {"a": "{b}", "b": "x"}
        # Braces are stripped by slugify, so "{b}" can never become a token
        assert resolve_file_name("{a}", values) == "b"
    
    def test_no_tokens(self):
        assert resolve_file_name("static", {"id": 1}) == "static"


class TestResolvePath:
    """Test directory and path resolution."""
    
    def test_lcfirst(self):
        assert lcfirst("BlogPost") == "blogPost"
        assert lcfirst("") == ""
    
    def test_resolve_directory(self):
        template = "/uploads/[[model]]/[[attribute]]/"
        assert resolve_directory(template, "BlogPost", "CoverImage") == "/uploads/blogPost/coverImage/"
    
    def test_resolve_path_lowercases_extension(self):
        path = resolve_path(
            "/uploads/[[model]]/[[attribute]]/",
            "{id}",
            "Post",
            "attachment",
            {"id": 3},
            "Report.PDF"
        )
        assert path == "/uploads/post/attachment/3.pdf"
    
    def test_resolve_path_uses_last_extension(self):
        path = resolve_path("/files", "{id}", "Post", "file", {"id": 1}, "backup.tar.GZ")
        assert path == "/files/1.gz"
    
    def test_resolve_path_without_extension(self):
        path = resolve_path("/files/", "{id}", "Post", "file", {"id": 1}, "README")
        assert path == "/files/1"
    
    @pytest.mark.parametrize("stored, expected", [
        (".htaccess", "/files/1.htaccess"),
        ("/old/dir/.ENV", "/files/1.env"),
        ("a.tar.", "/files/1"),
        ("dir.d/README", "/files/1"),
    ])
    def test_resolve_path_extension_rules(self, stored, expected):
        assert resolve_path("/files", "{id}", "Post", "file", {"id": 1}, stored) == expected
    
    @pytest.mark.parametrize("name, expected", [
        ("photo.JPG", ("photo", "JPG")),
        (".htaccess", ("", "htaccess")),
        ("a.tar.", ("a.tar", "")),
        ("/x.y/README", ("README", "")),
        ("C:\\docs\\cv.pdf", ("cv", "pdf")),
        ("", ("", "")),
    ])
    def test_split_extension(self, name, expected):
        assert split_extension(name) == expected
    
    def test_resolve_path_from_stored_path(self):
        stored = "/uploads/post/attachment/3.pdf"
        path = resolve_path("/uploads/[[model]]/[[attribute]]/", "{id}", "Post", "attachment", {"id": 3}, stored)
        assert path == stored
    
    @pytest.mark.parametrize("raw, expected", [
        ("/uploads//post/./a.txt", "/uploads/post/a.txt"),
        ("//uploads/a.txt", "/uploads/a.txt"),
        ("uploads\\post\\a.txt", "uploads/post/a.txt"),
        ("/uploads/post/../a.txt", "/uploads/a.txt"),
        ("", ""),
    ])
    def test_normalize_path(self, raw, expected):
        assert normalize_path(raw) == expected


class TestThumbPath:
    """Test thumbnail path derivation."""
    
    def test_inserts_profile_directory(self):
        assert thumb_path("/images/photo/12.jpg", "thumb") == "/images/photo/thumb/12.jpg"
    
    def test_bare_file_name(self):
        assert thumb_path("12.jpg", "small") == "small/12.jpg"
    
    def test_absolute_path(self, tmp_path):
        assert absolute_path(tmp_path, "/images/a.jpg") == tmp_path / "images" / "a.jpg"
        assert absolute_path(tmp_path, "images//a.jpg") == tmp_path / "images" / "a.jpg"
