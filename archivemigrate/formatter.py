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

import datetime


def now():
    dtnow = datetime.datetime.now()
    return dtnow.strftime("%Y-%m-%d %H:%M:%S")


def check_int(var, default):
    """
    Return an integer representation of var
    or return default value if var is not integer
    """
    try:
        return int(var)
    except (ValueError, TypeError):
        return default


def plural(var):
    """
    Convert 1 to 1st, 2 to 2nd etc
    Only used for logging, so no translation needed
    """
    var = check_int(var, 0)
    if 10 <= var % 100 <= 20:
        return "%dth" % var
    return "%d%s" % (var, {1: 'st', 2: 'nd', 3: 'rd'}.get(var % 10, 'th'))


def human_size(num):
    """Format a byte count for display, eg 1536 -> '1.5 KB'"""
    num = check_int(num, 0)
    if num < 0:
        num = 0
    units = ['B', 'KB', 'MB', 'GB', 'TB']
    i = 0
    value = float(num)
    while value >= 1024 and i < len(units) - 1:
        value /= 1024
        i += 1
    if i == 0:
        return "%d %s" % (num, units[0])
    return "%.1f %s" % (value, units[i])
