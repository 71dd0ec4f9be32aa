#  This file is part of ArchiveMigrate.
#
#  ArchiveMigrate is free software: you can redistribute it and/or modify
#  it under the terms of the GNU General Public License as published by
#  the Free Software Foundation, either version 3 of the License, or
#  (at your option) any later version.
#
#  ArchiveMigrate is distributed in the hope that it will be useful,
#  but WITHOUT ANY WARRANTY; without even the implied warranty of
#  MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  GNU General Public License for more details.
#
#  You should have received a copy of the GNU General Public License
#  along with ArchiveMigrate.  If not, see <http://www.gnu.org/licenses/>.

"""
Unit tests for archivemigrate.postprocess.normalizer.

Tests cover:
- Width folding and suffix stripping
- Idempotence of normalize
- Latin token and CJK bigram extraction
- Grouping keys for multi-volume names
"""

import pytest

from archivemigrate.postprocess.normalizer import (
    archive_group_key,
    extract_cjk_bigrams,
    extract_latin_tokens,
    has_cjk,
    normalize,
    strip_archive_suffix,
    to_half_width,
)


class TestHalfWidth:
    """Tests for to_half_width()."""

    def test_fullwidth_letters_and_punctuation(self):
        assert to_half_width('ＡＢＣ．ｚｉｐ！') == 'ABC.zip!'

    def test_ideographic_space(self):
        assert to_half_width('日本　語') == '日本 語'

    def test_other_characters_untouched(self):
        assert to_half_width('ゲーム abc') == 'ゲーム abc'


class TestStripArchiveSuffix:
    """Tests for strip_archive_suffix()."""

    @pytest.mark.parametrize('name', [
        'game.zip', 'game.rar', 'game.7z', 'game.7z.001', 'game.zip.12',
        'game.part1.rar', 'game.r00', 'game.z01', 'game.001',
    ])
    def test_suffixes_removed(self, name):
        assert strip_archive_suffix(name) == 'game'

    def test_case_insensitive(self):
        assert strip_archive_suffix('Game.PART2.RAR') == 'Game'

    def test_plain_name_unchanged(self):
        assert strip_archive_suffix('game.exe') == 'game.exe'


class TestNormalize:
    """Tests for normalize()."""

    def test_width_and_case_insensitive(self):
        assert normalize('Ａ.ＺＩＰ') == normalize('a.zip') == 'a'

    def test_release_style_name(self):
        assert normalize('[Group] Foo_Bar-(2023).part1.rar') == 'group foo bar 2023'

    def test_brackets_become_spaces(self):
        assert normalize('{a}(b)[c]') == 'a b c'

    def test_empty(self):
        assert normalize('') == ''

    @pytest.mark.parametrize('text', [
        'Ａ.ＺＩＰ',
        '[Group] Foo_Bar-(2023).part1.rar',
        'x.zip.zip',
        '魔法少女　ｖ１．０.7z.001',
        '  spaced   out  ',
    ])
    def test_idempotent(self, text):
        once = normalize(text)
        assert normalize(once) == once


class TestTokens:
    """Tests for extract_latin_tokens() and extract_cjk_bigrams()."""

    def test_latin_tokens_deduplicated_min_length(self):
        assert extract_latin_tokens('foo a bar foo 7z') == ['foo', 'bar', '7z']

    def test_bigrams_from_consecutive_cjk(self):
        assert extract_cjk_bigrams('日本語テスト') == ['日本', '本語', '語テ', 'テス', 'スト']

    def test_bigrams_skip_interspersed_ascii(self):
        assert extract_cjk_bigrams('日a本 1語') == ['日本', '本語']

    def test_bigrams_deduplicated(self):
        assert extract_cjk_bigrams('日本日本') == ['日本', '本日']

    def test_single_cjk_char_has_no_bigram(self):
        assert extract_cjk_bigrams('abc 日') == []

    def test_has_cjk(self):
        assert has_cjk('abc ｶﾀｶﾅ')
        assert not has_cjk('abc def')


class TestArchiveGroupKey:
    """Tests for archive_group_key()."""

    def test_seven_zip_volumes_share_key(self):
        assert archive_group_key('game.7z.001') == archive_group_key('game.7z.002') == 'game.7z'

    def test_rar_parts_share_key(self):
        assert archive_group_key('game.part1.rar') == archive_group_key('game.part2.rar') == 'game.rar'

    def test_rar_and_r_volumes_share_key(self):
        assert archive_group_key('game.rar') == archive_group_key('game.r00') == 'game.rar'

    def test_zip_and_z_volumes_share_key(self):
        assert archive_group_key('game.zip') == archive_group_key('game.z01')

    def test_plain_name_lowercased(self):
        assert archive_group_key('GAME.Zip') == 'game.zip'

    def test_fullwidth_name(self):
        assert archive_group_key('ＧＡＭＥ.7z.001') == 'game.7z'
