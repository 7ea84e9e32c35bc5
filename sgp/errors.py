from __future__ import annotations


class SgpRequestError(ValueError):
    """The pricing request itself is unusable (too few legs, malformed body).

    Per-book problems never raise; they are carried on ``SgpBookOdds.error``.
    """
