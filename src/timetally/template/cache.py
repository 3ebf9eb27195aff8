# SPDX-License-Identifier: MIT

from timetally.model.cache import CACHE_VERSION, CacheFile


def get_cache_template(token_hash: str) -> CacheFile:
    return {
        "version": CACHE_VERSION,
        "token_hash": token_hash,
        "workspaces": None,
        "projects": {},
        "clients": {},
        "time_entries": {},
    }
