import hashlib
from pathlib import Path

import pytest

from openstore_api.clicks import ClickParseError
from openstore_api.domain.compatibility import update_calculated_properties
from openstore_api.errors import StoreValidationError, ValidationKind
from openstore_api.service.ingest import RevisionIngestor, transition_architectures
from openstore_api.service.serializer import serialize_package

PACKAGE_ID = "openstore-test.openstore-team"


def _register(parser, path: Path, **fields):
    fields.setdefault("name", PACKAGE_ID)
    fields.setdefault("version", "1.0.0")
    fields.setdefault("architecture", "armhf")
    fields.setdefault("title", "OpenStore Test")
    fields.setdefault("description", "A test app")
    fields.setdefault("maintainer", "Jane Doe")
    return parser.register(path, **fields)


def _rejected(ingestor, package, path, channel="xenial") -> ValidationKind:
    with pytest.raises(StoreValidationError) as excinfo:
        ingestor.create_revision_from_click(package, path, channel)
    return excinfo.value.kind


@pytest.mark.parametrize("missing", ["name", "version", "architecture"])
def test_missing_manifest_fields_are_malformed(ingestor, parser, make_package, make_upload, missing):
    path = make_upload()
    _register(parser, path, **{missing: None})
    assert _rejected(ingestor, make_package(), path) == ValidationKind.MALFORMED_MANIFEST


def test_unreadable_archive_is_malformed(settings, make_package, make_upload):
    def _broken(path):
        raise ClickParseError("not an ar archive")

    ingestor = RevisionIngestor(settings=settings, parser=_broken)
    assert _rejected(ingestor, make_package(), make_upload()) == ValidationKind.MALFORMED_MANIFEST


def test_wrong_package(ingestor, parser, make_package, make_upload):
    path = make_upload()
    _register(parser, path, name="someone-else.app")
    assert _rejected(ingestor, make_package(), path) == ValidationKind.WRONG_PACKAGE


def test_existing_version(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["armhf"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "armhf")],
    )
    path = make_upload()
    _register(parser, path)
    assert _rejected(ingestor, package, path) == ValidationKind.EXISTING_VERSION
    assert len(package.revisions) == 1


def test_all_after_specific_arch_is_rejected(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["armhf"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "armhf")],
    )
    path = make_upload()
    _register(parser, path, architecture="all")
    assert _rejected(ingestor, package, path) == ValidationKind.NO_ALL


def test_specific_arch_after_all_is_rejected(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["all"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "all")],
    )
    path = make_upload()
    _register(parser, path, architecture="arm64")
    assert _rejected(ingestor, package, path) == ValidationKind.NO_NON_ALL


def test_mismatched_framework(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["arm64"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "arm64", framework="ubuntu-sdk-16.04")],
    )
    path = make_upload()
    _register(parser, path, framework="ubuntu-sdk-15.04")
    assert _rejected(ingestor, package, path) == ValidationKind.MISMATCHED_FRAMEWORK


def test_same_version_on_another_channel_may_change_framework(
    ingestor, parser, make_package, make_revision, make_upload
):
    package = make_package(
        architectures=["arm64"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "arm64", permissions=["networking"])],
    )
    path = make_upload()
    _register(
        parser,
        path,
        architecture="arm64",
        framework="ubuntu-sdk-20.04",
        permissions=["networking", "audio"],
    )

    revision = ingestor.create_revision_from_click(package, path, "focal")

    assert revision.revision == 2
    assert revision.framework == "ubuntu-sdk-20.04"


def test_new_permission_outside_first_sibling_is_rejected(
    ingestor, parser, make_package, make_revision, make_upload
):
    package = make_package(
        architectures=["arm64"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "arm64", permissions=["permission1", "permission2"])],
    )
    path = make_upload()
    _register(parser, path, permissions=["permission1", "permission3"])
    assert _rejected(ingestor, package, path) == ValidationKind.MISMATCHED_PERMISSIONS


def test_permission_subset_of_first_sibling_is_accepted(
    ingestor, parser, make_package, make_revision, make_upload
):
    package = make_package(
        architectures=["arm64"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "arm64", permissions=["permission1", "permission2"])],
    )
    path = make_upload()
    _register(parser, path, permissions=["permission1"])

    revision = ingestor.create_revision_from_click(package, path, "xenial")

    assert revision.permissions == ["permission1"]
    assert package.architectures == ["arm64", "armhf"]


def test_first_sibling_without_permissions_accepts_any(
    ingestor, parser, make_package, make_revision, make_upload
):
    package = make_package(
        architectures=["arm64"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "arm64", permissions=[])],
    )
    path = make_upload()
    _register(parser, path, permissions=["permission1", "permission2"])

    revision = ingestor.create_revision_from_click(package, path, "xenial")
    assert revision.revision == 2


def test_permissions_compare_against_first_sibling_only(
    ingestor, parser, make_package, make_revision, make_upload
):
    package = make_package(
        architectures=["arm64", "amd64"],
        channels=["xenial"],
        revisions=[
            make_revision(1, "1.0.0", "xenial", "arm64", permissions=["permission1"]),
            make_revision(2, "1.0.0", "xenial", "amd64", permissions=["permission1", "permission2"]),
        ],
    )
    path = make_upload()
    _register(parser, path, permissions=["permission2"])
    assert _rejected(ingestor, package, path) == ValidationKind.MISMATCHED_PERMISSIONS


def test_specific_to_all_transition(ingestor, parser, settings, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["arm64"],
        channels=["focal"],
        revisions=[make_revision(1, "1.0.0", "focal", "arm64")],
    )
    path = make_upload()
    _register(parser, path, version="2.0.0", architecture="all")

    ingestor.create_revision_from_click(package, path, "focal")
    update_calculated_properties(package)

    assert package.architectures == ["all"]
    assert package.channel_architectures == ["focal:all"]
    downloads = serialize_package(package, settings=settings)["downloads"]
    assert len(downloads) == 1
    assert downloads[0]["architecture"] == "all"
    assert downloads[0]["version"] == "2.0.0"


def test_all_to_specific_transition(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["all"],
        channels=["focal"],
        revisions=[make_revision(1, "1.0.0", "focal", "all")],
    )
    path = make_upload()
    _register(parser, path, version="2.0.0", architecture="armhf")

    ingestor.create_revision_from_click(package, path, "focal")

    assert package.architectures == ["armhf"]


def test_transition_architectures_accumulates_specific_arches():
    assert transition_architectures([], "armhf") == ["armhf"]
    assert transition_architectures(["armhf"], "arm64") == ["armhf", "arm64"]
    assert transition_architectures(["armhf", "arm64"], "arm64") == ["armhf", "arm64"]
    assert transition_architectures(["armhf"], "all") == ["all"]
    assert transition_architectures(["all"], "all") == ["all"]
    assert transition_architectures(["all"], "amd64") == ["amd64"]


def test_artifact_is_stored_at_canonical_path(ingestor, parser, settings, make_package, make_upload):
    package = make_package()
    path = make_upload(b"payload-bytes")
    _register(parser, path, installed_size=64)

    revision = ingestor.create_revision_from_click(package, path, "xenial")

    expected = settings.data_dir / f"{PACKAGE_ID}-xenial-armhf-1.0.0.click"
    assert revision.download_url == str(expected)
    assert expected.read_bytes() == b"payload-bytes"
    assert not path.exists()
    assert revision.download_sha512 == hashlib.sha512(b"payload-bytes").hexdigest()
    assert revision.download_size == len(b"payload-bytes")
    assert revision.filesize == 64
    assert revision.downloads == 0
    assert revision.revision == 1
    assert package.channels == ["xenial"]
    assert package.architectures == ["armhf"]
    assert package.updated_date == revision.created_date


def test_metadata_refreshes_only_for_default_channel_or_first_revision(
    ingestor, parser, make_package, make_upload
):
    package = make_package()
    first = make_upload()
    _register(parser, first, title="First Title", description="<b>First</b>", types=["app"])
    ingestor.create_revision_from_click(package, first, "focal")

    assert package.name == "First Title"
    assert package.description == "First"
    assert package.version == "1.0.0"
    assert package.manifest["title"] == "First Title"

    second = make_upload()
    _register(parser, second, version="2.0.0", title="Second Title", types=["webapp"])
    ingestor.create_revision_from_click(package, second, "focal")

    assert package.version == "1.0.0"
    assert package.types == ["app"]
    assert package.manifest["version"] == "1.0.0"

    third = make_upload()
    _register(parser, third, version="3.0.0", title="Third Title", types=["webapp"])
    ingestor.create_revision_from_click(package, third, "xenial")

    assert package.version == "3.0.0"
    assert package.types == ["webapp"]
    # Store-edited presentation fields are never overwritten
    assert package.name == "First Title"
    assert package.channels == ["focal", "xenial"]


def test_changelog_is_prepended_and_sanitized(ingestor, parser, make_package, make_upload):
    package = make_package(changelog="old changelog")
    path = make_upload()
    _register(parser, path)

    ingestor.create_revision_from_click(package, path, "xenial", "<script></script> changelog update")

    assert package.changelog == "changelog update\n\nold changelog"


def test_icon_replaced_on_default_channel(ingestor, parser, settings, make_package, make_upload, tmp_path):
    icon = tmp_path / "extracted-icon.PNG"
    icon.write_bytes(b"png")
    package = make_package()
    path = make_upload()
    _register(parser, path, icon=str(icon))

    ingestor.create_revision_from_click(package, path, "xenial")

    expected = settings.icon_dir / f"{PACKAGE_ID}.png"
    assert package.icon == str(expected)
    assert expected.read_bytes() == b"png"
    assert not icon.exists()


def test_icon_with_unsupported_extension_is_ignored(ingestor, parser, make_package, make_upload, tmp_path):
    icon = tmp_path / "extracted-icon.xpm"
    icon.write_bytes(b"xpm")
    package = make_package(icon="/srv/icons/existing.png")
    path = make_upload()
    _register(parser, path, icon=str(icon))

    ingestor.create_revision_from_click(package, path, "xenial")

    assert package.icon == "/srv/icons/existing.png"
    assert not icon.exists()


def test_icon_kept_for_secondary_channel(
    ingestor, parser, make_package, make_revision, make_upload, tmp_path
):
    icon = tmp_path / "extracted-icon.svg"
    icon.write_bytes(b"<svg/>")
    package = make_package(
        icon="/srv/icons/existing.png",
        architectures=["armhf"],
        channels=["xenial"],
        revisions=[make_revision(1, "1.0.0", "xenial", "armhf")],
    )
    path = make_upload()
    _register(parser, path, version="1.1.0", icon=str(icon))

    ingestor.create_revision_from_click(package, path, "focal")

    assert package.icon == "/srv/icons/existing.png"
    assert not icon.exists()


def test_rejected_upload_leaves_package_untouched(ingestor, parser, make_package, make_revision, make_upload):
    package = make_package(
        architectures=["armhf"],
        channels=["xenial"],
        changelog="old",
        revisions=[make_revision(1, "1.0.0", "xenial", "armhf")],
    )
    path = make_upload()
    _register(parser, path, architecture="all")

    with pytest.raises(StoreValidationError):
        ingestor.create_revision_from_click(package, path, "xenial", "new notes")

    assert package.changelog == "old"
    assert package.architectures == ["armhf"]
    assert len(package.revisions) == 1


def test_versions_with_similar_spellings_get_separate_artifacts(ingestor, parser, make_package, make_upload):
    package = make_package()
    first = make_upload(b"first")
    _register(parser, first, version="1.0.0")
    second = make_upload(b"second")
    _register(parser, second, version="1.0.0-")

    one = ingestor.create_revision_from_click(package, first, "xenial")
    two = ingestor.create_revision_from_click(package, second, "xenial")

    assert one.download_url != two.download_url
    assert Path(one.download_url).read_bytes() == b"first"
    assert Path(two.download_url).read_bytes() == b"second"
    assert one.download_sha512 == hashlib.sha512(b"first").hexdigest()
    assert two.download_sha512 == hashlib.sha512(b"second").hexdigest()


def test_existing_artifact_is_never_overwritten(ingestor, parser, settings, make_package, make_upload):
    orphan = settings.data_dir / f"{PACKAGE_ID}-xenial-armhf-1.0.0.click"
    orphan.parent.mkdir(parents=True, exist_ok=True)
    orphan.write_bytes(b"orphan")
    package = make_package()
    path = make_upload(b"replacement")
    _register(parser, path)

    assert _rejected(ingestor, package, path) == ValidationKind.EXISTING_VERSION
    assert orphan.read_bytes() == b"orphan"
    assert package.revisions == []


def test_artifact_removed_when_icon_copy_fails(
    ingestor, parser, settings, make_package, make_upload, tmp_path, monkeypatch
):
    icon = tmp_path / "extracted-icon.png"
    icon.write_bytes(b"png")
    package = make_package()
    path = make_upload()
    _register(parser, path, icon=str(icon))

    def _fail(self, package, icon):
        raise PermissionError("icon dir is read-only")

    monkeypatch.setattr(RevisionIngestor, "_replace_icon", _fail)

    with pytest.raises(PermissionError):
        ingestor.create_revision_from_click(package, path, "xenial")

    assert not (settings.data_dir / f"{PACKAGE_ID}-xenial-armhf-1.0.0.click").exists()
