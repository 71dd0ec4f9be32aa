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
Multi-volume archive detection for ArchiveMigrate.

Name-only checks used by the orchestrator before any extract work is
attempted. All of them go through volumes.classify so that detection and
primary selection agree on what a volume looks like.
"""

from typing import List, Optional, Sequence, Tuple

from archivemigrate.postprocess.volumes import VolumeScheme, classify


class VolumeDetector:
    """Multipart detection and primary-volume selection."""

    # Priority used when a group mixes schemes
    SCHEME_ORDER = (VolumeScheme.RAR_PART, VolumeScheme.SEVEN_ZIP, VolumeScheme.R_STYLE)

    @staticmethod
    def is_multipart(names: Sequence[str]) -> bool:
        """Check whether any name carries a volume suffix.

        Args:
            names: File names of one group

        Returns:
            True for name.7z.002, name.part1.rar, name.r00 and similar
        """
        return any(classify(n).scheme is not VolumeScheme.NONE for n in names)

    @staticmethod
    def select_primary(names: Sequence[str]) -> Optional[str]:
        """Pick the volume the archive tool should be pointed at.

        Order: part 1 of a .partN.rar set, then any .rar, then volume 1 of a
        .7z/.zip split, then the smallest name.
        """
        if not names:
            return None
        infos = [(n, classify(n)) for n in names]

        for name, info in infos:
            if info.scheme is VolumeScheme.RAR_PART and info.volume == 1:
                return name
        for name, info in infos:
            if name.lower().endswith('.rar'):
                return name
        for name, info in infos:
            if (info.scheme is VolumeScheme.SEVEN_ZIP and info.volume == 1
                    and info.container in ('7z', 'zip')):
                return name
        return min(names)

    @staticmethod
    def has_first_volume(names: Sequence[str]) -> bool:
        """True if the opening volume is among names.

        For the r00 scheme the opening volume is the bare .rar / .zip.
        """
        for name in names:
            info = classify(name)
            if info.scheme in (VolumeScheme.SEVEN_ZIP, VolumeScheme.RAR_PART) and info.volume == 1:
                return True
            if info.scheme is VolumeScheme.NONE and info.container in ('rar', 'zip'):
                return True
        return False

    @staticmethod
    def has_subsequent_volume(names: Sequence[str]) -> bool:
        """True if any volume after the opening one is among names."""
        for name in names:
            info = classify(name)
            if info.scheme is VolumeScheme.R_STYLE:
                return True
            if info.scheme in (VolumeScheme.SEVEN_ZIP, VolumeScheme.RAR_PART) and info.volume >= 2:
                return True
        return False

    @classmethod
    def detect_missing_volumes(cls, names: Sequence[str]) -> Tuple[VolumeScheme, List[int]]:
        """Find gaps in the volume numbering.

        Numbered schemes are expected to run 1..max, the r00 scheme 0..max.

        Args:
            names: File names of one group

        Returns:
            Tuple of (scheme, missing volume numbers); NONE and [] when
            nothing is split
        """
        infos = [classify(n) for n in names]
        for scheme in cls.SCHEME_ORDER:
            numbers = {i.volume for i in infos if i.scheme is scheme}
            if not numbers:
                continue
            start = 0 if scheme is VolumeScheme.R_STYLE else 1
            missing = [n for n in range(start, max(numbers) + 1) if n not in numbers]
            return scheme, missing
        return VolumeScheme.NONE, []


is_multipart = VolumeDetector.is_multipart
select_primary = VolumeDetector.select_primary
detect_missing_volumes = VolumeDetector.detect_missing_volumes
