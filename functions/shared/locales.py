# Copyright 2025 Google LLC
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
# ==============================================================================

"""
Host locale preferences exposed over the `system_locales` platform channel.

The mobile shell asks for `getSystemLocales` and receives the user-ordered
list of BCP-47 language tags. On a server host the preference list comes
from the POSIX locale environment instead of the device settings.
"""

from __future__ import annotations

import os
from typing import List, Mapping, Optional

from shared.types import MethodCallResult

SYSTEM_LOCALES_CHANNEL = "com.kenzo.kien/system_locales"
GET_SYSTEM_LOCALES = "getSystemLocales"

# Variables consulted in priority order; LANGUAGE holds a colon separated list.
LOCALE_ENV_VARS = ("LANGUAGE", "LC_ALL", "LC_MESSAGES", "LANG")

_UNSPECIFIED_LOCALES = {"C", "POSIX"}

_SCRIPT_MODIFIERS = {
    "latin": "Latn",
    "cyrillic": "Cyrl",
    "devanagari": "Deva",
}


def to_language_tag(posix_locale: str) -> Optional[str]:
    """
    Converts a POSIX locale name such as `en_US.UTF-8` or `sr_RS@latin` to a
    BCP-47 tag (`en-US`, `sr-Latn-RS`). Returns None for C/POSIX or blanks.
    """
    name = posix_locale.strip()
    name, _, modifier = name.partition("@")
    name = name.split(".", 1)[0]
    if not name or name in _UNSPECIFIED_LOCALES:
        return None

    language, _, region = name.replace("-", "_").partition("_")
    parts = [language.lower()]
    script = _SCRIPT_MODIFIERS.get(modifier.lower())
    if script:
        parts.append(script)
    if region:
        parts.append(region.upper())
    return "-".join(parts)


def get_system_locales(environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Returns the host's preferred locales, most preferred first, without duplicates."""
    environ = os.environ if environ is None else environ
    tags: List[str] = []
    for var in LOCALE_ENV_VARS:
        for entry in environ.get(var, "").split(":"):
            tag = to_language_tag(entry)
            if tag and tag not in tags:
                tags.append(tag)
    return tags


def handle_method_call(
    method: str, environ: Optional[Mapping[str, str]] = None
) -> MethodCallResult:
    if method != GET_SYSTEM_LOCALES:
        return MethodCallResult(not_implemented=True)
    try:
        return MethodCallResult(value=get_system_locales(environ))
    except Exception as e:
        return MethodCallResult(error_code="ERROR", error_message=str(e))
