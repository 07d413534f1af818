"""TAROTAPI CONFIG MODULE"""

import collections.abc
import os

from tarotapi.config import base, prod, test


def _nested_dict_update(d, u):
    for k, v in u.items():
        if isinstance(v, collections.abc.Mapping):
            d[k] = _nested_dict_update(d.get(k, {}), v)
        else:
            d[k] = v
    return d


SETTINGS = base.SETTINGS

if os.getenv("ENVIRONMENT") == "prod":
    _nested_dict_update(SETTINGS, prod.SETTINGS)

if os.getenv("ENVIRONMENT") in ("test", "testing"):
    _nested_dict_update(SETTINGS, test.SETTINGS)
