#  This file is part of ArchiveMigrate.
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Text normalisation for release-style file names and catalog titles.

All functions here are pure. normalize() is idempotent: its output contains
no dots, so a second pass has no archive suffix left to strip.
"""

import re
from typing import List

from archivemigrate.postprocess.volumes import VolumeScheme, classify

FULLWIDTH_START = 0xFF01
FULLWIDTH_END = 0xFF5E
FULLWIDTH_OFFSET = 0xFEE0
IDEOGRAPHIC_SPACE = 0x3000

_ARCHIVE_EXT_RE = re.compile(r'\.(zip|rar|7z)(?:\.[0-9]+)?$', re.IGNORECASE)
_VOLUME_SUFFIX_RE = re.compile(r'\.(part[0-9]+|r[0-9]{2}|z[0-9]{2}|[0-9]{3,})$', re.IGNORECASE)
_BRACKETS_RE = re.compile(r'[\[\]{}()]')
_SEPARATORS_RE = re.compile(r'[._\-]+')
_WHITESPACE_RE = re.compile(r'\s+')
_LATIN_TOKEN_RE = re.compile(r'[a-z0-9]+')

# Hiragana/Katakana, CJK extension A, CJK unified, half-width Katakana
CJK_CHAR_RE = re.compile('[\u3040-\u30ff\u3400-\u4dbf\u4e00-\u9fff\uff66-\uff9f]')


def to_half_width(text: str) -> str:
    """Fold full-width ASCII variants and the ideographic space to ASCII."""
    out = []
    for ch in text:
        code = ord(ch)
        if code == IDEOGRAPHIC_SPACE:
            out.append(' ')
        elif FULLWIDTH_START <= code <= FULLWIDTH_END:
            out.append(chr(code - FULLWIDTH_OFFSET))
        else:
            out.append(ch)
    return ''.join(out)


def strip_archive_suffix(name: str) -> str:
    """Remove a trailing archive extension and then any volume suffix.

    'game.part1.rar' -> 'game', 'game.7z.001' -> 'game', 'game.r00' -> 'game'
    """
    name = _ARCHIVE_EXT_RE.sub('', name)
    return _VOLUME_SUFFIX_RE.sub('', name)


def normalize(text: str) -> str:
    """Canonical comparison form of a file name or title."""
    if not text:
        return ''
    result = strip_archive_suffix(to_half_width(text).lower())
    result = _BRACKETS_RE.sub(' ', result)
    result = _SEPARATORS_RE.sub(' ', result)
    return _WHITESPACE_RE.sub(' ', result).strip()


def has_cjk(text: str) -> bool:
    return CJK_CHAR_RE.search(text) is not None


def extract_latin_tokens(text: str) -> List[str]:
    """Alphanumeric runs of two or more characters, first occurrence order."""
    tokens = [t for t in _LATIN_TOKEN_RE.findall(text) if len(t) >= 2]
    return list(dict.fromkeys(tokens))


def extract_cjk_bigrams(text: str) -> List[str]:
    """Adjacent pairs of the CJK characters in text.

    Non-CJK characters are dropped before pairing, so 'ab日c本' gives '日本'.
    """
    chars = [ch for ch in text if CJK_CHAR_RE.match(ch)]
    bigrams = [chars[i] + chars[i + 1] for i in range(len(chars) - 1)]
    return list(dict.fromkeys(bigrams))


def archive_group_key(file_name: str) -> str:
    """Key shared by every volume of one multi-volume archive.

    The volume suffix is replaced by the container extension, so
    'game.7z.002' -> 'game.7z', 'game.part2.rar' -> 'game.rar' and
    'game.r00' -> 'game.rar'. Other names come back lowercased.
    """
    lower = to_half_width(file_name).lower()
    info = classify(lower)
    if info.scheme is VolumeScheme.NONE:
        return lower
    return '%s.%s' % (info.base, info.container)
