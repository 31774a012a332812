"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules.
"""

from pathlib import Path

import pytest


@pytest.fixture
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point GENTUP_CONFIG_DIR at a temporary directory."""
    directory = tmp_path / "etc" / "gentup"
    monkeypatch.setenv("GENTUP_CONFIG_DIR", str(directory))
    return directory


@pytest.fixture
def mock_pretend_output() -> str:
    """Sample ``emerge --pretend --verbose @world`` output."""
    return """
These are the packages that would be merged, in order:

Calculating dependencies... done!
Dependency resolution took 4.21 s (backtrack: 0/20).

[ebuild     U  ] sys-apps/portage-3.0.65::gentoo [3.0.63-r1::gentoo] USE="(ipc) native-extensions rsync-verify (-apidoc) -build -doc -gentoo-dev (-selinux) -test" PYTHON_TARGETS="python3_12 -python3_10 -python3_11 -python3_13" 1,142 KiB
[ebuild  NS    ] sys-devel/gcc-14.1.0:14::gentoo [13.2.1_p20240210:13::gentoo] USE="cxx fortran (multilib) nls openmp pie sanitize ssp -ada -d" 87,112 KiB
[ebuild  N     ] dev-libs/libfoo-1.2::gentoo  USE="-static-libs" 210 KiB
[ebuild     U  ] app-editors/vim-9.1.0509::gentoo [9.1.0394::gentoo] USE="acl crypt gpm nls -X -cscope" 17,020 KiB

Total: 4 packages (2 upgrades, 1 new, 1 in new slot), Size of downloads: 105,484 KiB

 * IMPORTANT: 2 news items need reading for repository 'gentoo'.
 * Use eselect news read to view new items.
"""


@pytest.fixture
def mock_depclean_output() -> str:
    """Sample ``emerge --pretend --depclean`` output."""
    return """
Calculating dependencies... done!
>>> Calculating removal order...

>>> These are the packages that would be unmerged:

 dev-python/setuptools-scm
    selected: 8.0.4
   protected: none
     omitted: 8.1.0

 dev-libs/libbar
    selected: 0.9
   protected: none
     omitted: none

All selected packages: =dev-python/setuptools-scm-8.0.4 =dev-libs/libbar-0.9

>>> 'Selected' packages are slated for removal.
>>> 'Protected' and 'omitted' packages will not be removed.

Packages installed:   812
Packages in world:    64
Packages in system:   43
Required packages:    810
Number to remove:     2
"""


@pytest.fixture
def mock_empty_output() -> str:
    """Empty output for testing edge cases."""
    return ""
