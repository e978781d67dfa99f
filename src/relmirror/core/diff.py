"""Find origin assets that the mirror release does not have yet."""

from relmirror.models.release import Asset, Release


def missing_assets(origin: Release, mirror: Release | None) -> list[Asset]:
    """Assets of ``origin`` whose name is absent from ``mirror``.

    Matching is by name only; size and URL differences are ignored. With no
    mirror release every origin asset is missing.
    """
    if mirror is None:
        return list(origin.assets)

    present = mirror.asset_names()
    return [asset for asset in origin.assets if asset.name not in present]
