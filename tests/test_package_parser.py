from pathlib import Path

import pytest

from marmalade_api.domain.models import PackageKind, parse_version
from marmalade_api.errors import PackageSyntaxError
from marmalade_api.packages.parser import (
    get_headers,
    get_section,
    parse_declaration,
    parse_elisp,
    parse_elisp_file,
    parse_package,
    parse_requires,
    parse_tar,
    parse_tar_file,
    strip_rcs,
)


def test_single_file_package(make_elisp):
    package = parse_elisp(make_elisp(requires='((bar "0.1"))'))

    assert package.name == "foo"
    assert package.description == "A test package"
    assert package.version == (1, 2, 3)
    assert package.requires == [("bar", (0, 1))]
    assert package.commentary == "Hello world."
    assert package.kind is PackageKind.SINGLE
    assert package.headers["version"] == "1.2.3"


def test_missing_version_header_names_both_headers(make_elisp):
    with pytest.raises(PackageSyntaxError) as excinfo:
        parse_elisp(make_elisp(version=""))

    assert '"Version"' in excinfo.value.message
    assert '"Package-Version"' in excinfo.value.message


def test_package_version_header_wins_over_version():
    elisp = "\n".join(
        [
            ";;; qux.el --- Versions",
            ";; Version: 0.1",
            ";; Package-Version: 20240101.1200",
            ";;; qux.el ends here",
        ]
    )

    assert parse_elisp(elisp).version == (20240101, 1200)


def test_rcs_revision_is_stripped():
    assert strip_rcs("$Revision: 1.4 $") == "1.4"
    assert strip_rcs("1.4") == "1.4"


def test_missing_start_and_end_comments():
    with pytest.raises(PackageSyntaxError, match="No starting comment"):
        parse_elisp("(provide 'foo)\n")
    with pytest.raises(PackageSyntaxError, match="No closing comment"):
        parse_elisp(";;; foo.el --- Unfinished\n;; Version: 1.0\n")


def test_non_numeric_version_is_rejected():
    with pytest.raises(PackageSyntaxError) as excinfo:
        parse_version("1.2beta")

    assert excinfo.value.message == 'Version "1.2beta" must contain only numbers separated by dots.'


def test_headers_keep_first_occurrence():
    headers = get_headers(";; Author: First\n;; Author: Second\n;; Keywords: \n")

    assert headers == {"author": "First"}


def test_section_stops_at_next_section():
    elisp = ";;; Commentary:\n;; Line one\n;; Line two\n;;; Code:\n(foo)\n"

    assert get_section(elisp, "commentary") == "Line one\nLine two"
    assert get_section(elisp, "history") is None


def test_requires_must_be_pairs():
    assert parse_requires("") == []
    assert parse_requires("nil") == []
    with pytest.raises(PackageSyntaxError):
        parse_requires('((bar))')
    with pytest.raises(PackageSyntaxError):
        parse_requires('((bar 1.0))')


def test_declaration_with_quoted_requires():
    package = parse_declaration(
        '(define-package "baz" "1.0" "Tarred" (quote ((foo "1.2") (bar "0.1"))))'
    )

    assert package.name == "baz"
    assert package.version == (1, 0)
    assert package.description == "Tarred"
    assert package.requires == [("foo", (1, 2)), ("bar", (0, 1))]
    assert package.kind is PackageKind.TAR


def test_declaration_head_must_be_define_package():
    with pytest.raises(PackageSyntaxError, match="Expected a call to define-package"):
        parse_declaration('(defun "baz" "1.0")')


def test_declaration_requires_must_be_quoted():
    with pytest.raises(PackageSyntaxError, match="Requires must be quoted"):
        parse_declaration('(define-package "baz" "1.0" "Tarred" ((foo "1.2")))')


@pytest.mark.asyncio
async def test_tar_package(make_tar):
    data = make_tar(
        requires='((foo "1.2"))',
        files={
            "baz.el": ";;; baz.el --- Tarred\n;; Author: Someone\n",
            "README": "Read me first.\n",
        },
    )

    package = await parse_tar(data)

    assert package.name == "baz"
    assert package.version == (1, 0)
    assert package.requires == [("foo", (1, 2))]
    assert package.headers == {"author": "Someone"}
    assert package.commentary == "Read me first.\n"
    assert package.kind is PackageKind.TAR


@pytest.mark.asyncio
async def test_tar_version_mismatch_names_both_versions(make_tar):
    with pytest.raises(PackageSyntaxError) as excinfo:
        await parse_tar(make_tar(version="1.0", declared_version="1.1"))

    assert '"1.1"' in excinfo.value.message
    assert '"1.0"' in excinfo.value.message


@pytest.mark.asyncio
async def test_tar_name_mismatch(make_tar):
    with pytest.raises(PackageSyntaxError, match="doesn't match archive name"):
        await parse_tar(make_tar(declared_name="other"))


@pytest.mark.asyncio
async def test_tar_without_declaration(make_tar):
    with pytest.raises(PackageSyntaxError, match="does not contain baz-pkg.el"):
        await parse_tar(make_tar(with_declaration=False, files={"baz.el": ";; nothing\n"}))


@pytest.mark.asyncio
async def test_tar_directory_must_be_named_after_package(make_tar):
    with pytest.raises(PackageSyntaxError, match="exactly one directory"):
        await parse_tar(make_tar(directory="baz"))


@pytest.mark.asyncio
async def test_invalid_tar_is_a_syntax_error():
    with pytest.raises(PackageSyntaxError, match="Invalid tar archive"):
        await parse_tar(b"definitely not a tarball")


@pytest.mark.asyncio
async def test_scratch_directory_is_removed(make_tar, tmp_path, monkeypatch):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(
        "marmalade_api.packages.parser.tempfile.mkdtemp",
        lambda prefix: str(scratch),
    )

    await parse_tar(make_tar())

    assert not scratch.exists()


@pytest.mark.asyncio
async def test_custom_unpacker_is_used(tmp_path):
    def unpack(source, destination: Path) -> None:
        package_dir = destination / "tiny-0.1"
        package_dir.mkdir()
        (package_dir / "tiny-pkg.el").write_text('(define-package "tiny" "0.1" "Tiny")')

    package = await parse_tar(b"", unpack=unpack)

    assert package.name == "tiny"
    assert package.description == "Tiny"


@pytest.mark.asyncio
async def test_parse_package_dispatches_on_kind(make_elisp, make_tar):
    single = await parse_package(make_elisp().encode("utf-8"), PackageKind.SINGLE)
    tarred = await parse_package(make_tar(), PackageKind.TAR)

    assert single.kind is PackageKind.SINGLE
    assert tarred.kind is PackageKind.TAR


@pytest.mark.asyncio
async def test_parse_from_files(make_elisp, make_tar, tmp_path):
    elisp_path = tmp_path / "foo.el"
    elisp_path.write_text(make_elisp(), encoding="utf-8")
    tar_path = tmp_path / "baz-1.0.tar"
    tar_path.write_bytes(make_tar())

    assert (await parse_elisp_file(elisp_path)).name == "foo"
    assert (await parse_tar_file(tar_path)).name == "baz"


def test_unterminated_section():
    with pytest.raises(PackageSyntaxError) as excinfo:
        get_section(";;; Commentary:\n;; never closed\n", "commentary")

    assert excinfo.value.message == "Unterminated section: Commentary"


def test_deeper_subsection_stays_inside_section():
    elisp = ";;; Commentary:\n;; intro\n;;;; Details:\n;; more\n;;; Code:\n(x)"

    assert get_section(elisp, "commentary") == "intro\nDetails:\nmore"


def test_documentation_section_is_read_as_commentary():
    elisp = "\n".join(
        [
            ";;; doc.el --- Documented",
            ";; Version: 1.0",
            ";;; Documentation:",
            ";; Explained here.",
            "(provide 'doc)",
            ";;; doc.el ends here",
        ]
    )

    assert parse_elisp(elisp).commentary == "Explained here."


def test_empty_header_values_are_dropped(make_elisp):
    elisp = make_elisp().replace(";; Version: 1.2.3", ";; Version: 1.2.3\n;; URL: \n;; Author: Someone")

    package = parse_elisp(elisp)

    assert "url" not in package.headers
    assert package.headers["author"] == "Someone"


@pytest.mark.asyncio
async def test_latin1_single_file_is_decoded_lossily(make_elisp):
    data = make_elisp(description="Café helpers").encode("latin-1")

    package = await parse_package(data, PackageKind.SINGLE)

    assert package.description == "Caf� helpers"
    assert package.version == (1, 2, 3)


@pytest.mark.asyncio
async def test_latin1_files_inside_tar_are_decoded_lossily(make_tar):
    data = make_tar(
        files={
            "baz.el": ";;; baz.el --- Tarred\n;; Author: José\n".encode("latin-1"),
            "README": "Café notes\n".encode("latin-1"),
        }
    )

    package = await parse_tar(data)

    assert package.headers == {"author": "Jos�"}
    assert package.commentary == "Caf� notes\n"


@pytest.mark.asyncio
async def test_latin1_file_on_disk(make_elisp, tmp_path):
    path = tmp_path / "foo.el"
    path.write_bytes(make_elisp(description="Café helpers").encode("latin-1"))

    assert (await parse_elisp_file(path)).description == "Caf� helpers"
