"""
Shared fixtures for the inventory sync tests.
"""

from pathlib import Path

import pytest

from inventory_sync.config import reset_settings
from inventory_sync.extraction.catalogs import PlatformProfile
from inventory_sync.extraction.helpers import collect, join_or_na
from inventory_sync.extraction.rules import build_rule_set
from inventory_sync.reconcile.layout import ColumnBlock, TableLayout
from inventory_sync.sheets.base import TableRef
from inventory_sync.sheets.memory import InMemoryTableGateway

ENV_VARS = (
    "GOOGLE_CREDENTIALS_FILE",
    "SPREADSHEET_ID",
    "WORKSHEET_NAME",
    "DIRECTORY_PATH",
    "FILE_PATTERN",
    "CONTINUE_ON_ERROR",
    "PLATFORM",
    "RULES_FILE",
    "TIMEZONE",
    "PLACEHOLDER_SERIALS",
    "HIGHLIGHT_COLOR",
    "LOG_LEVEL",
    "LOG_DIR",
    "LOG_FILE",
    "LOG_FILE_PREFIX",
    "LOG_MAX_FILES",
    "DEV_MODE",
)

WORKSHEET = "Inventory"

# Columns: rack, slot, serial, address, hostname, cpu, notes, apps
HEADER = ["Rack", "U", "SN", "Address", "Hostname", "CPU", "Notes", "Apps"]

INVENTORY_ROWS = [
    HEADER,
    ["3", "10", "SRV001", "10.0.0.2"],
    ["3", "12", "SRV002", "10.0.0.3"],
    ["5", "22", "ABC123", "10.0.0.4"],
    ["5", "24", "DEF456", "10.0.0.5"],
    ["7", "2", "GHI789", "10.0.0.6"],
    ["9", "30", "HOST09", "10.20.0.5"],
]

REPORT_CONTENT = """\
Hostname: web01
CPU: Xeon Gold 6230
App: nginx
App: postgresql
"""


def apps(content: str, filename: str) -> str:
    return join_or_na(collect(content, r"App\s*:\s*(\S+)"))


SMALL_RULES = [
    {"field": "Hostname", "pattern": r"Hostname\s*:\s*(\S+)"},
    {"field": "CPU", "pattern": r"CPU\s*:\s*(.+)"},
    {"field": "Apps", "function": "apps"},
]

SMALL_FUNCTIONS = {"apps": apps}


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch, tmp_path):
    """Isolate every test from the caller's environment and .env file."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOG_FILE", "false")
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def small_layout():
    """Serial in C, rack in A, slot in B, address in D; values go to E:F and H."""
    return TableLayout(
        serial_column=2,
        rack_column=0,
        slot_column=1,
        address_column=3,
        write_blocks=(ColumnBlock(start=4, end=5), ColumnBlock(start=7, end=7)),
    )


@pytest.fixture
def small_rule_set():
    return build_rule_set("test", SMALL_RULES, SMALL_FUNCTIONS)


@pytest.fixture
def small_profile(small_rule_set, small_layout):
    return PlatformProfile("test", small_rule_set, small_layout)


@pytest.fixture
def table():
    return TableRef(spreadsheet_id="sheet-under-test", worksheet=WORKSHEET)


@pytest.fixture
def gateway():
    return InMemoryTableGateway({WORKSHEET: INVENTORY_ROWS})


@pytest.fixture
def reports_dir(tmp_path):
    directory = tmp_path / "reports"
    directory.mkdir()
    return directory


@pytest.fixture
def write_report(reports_dir):
    """Write a report file into the reports directory and return its path."""

    def _write(name: str, content: str = REPORT_CONTENT, encoding: str = "utf-8") -> Path:
        path = reports_dir / name
        path.write_text(content, encoding=encoding)
        return path

    return _write


LINUX_REPORT = """\
====================
System Information
====================
Hostname: web01
OS Name & Version : Ubuntu 22.04.3 LTS
Kernel Version : 5.15.0-91-generic
Architecture : x86_64
Firmware Version : 2.19.1
Firmware Release : 06/12/2023
model name      : Intel(R) Xeon(R) Gold 6230 CPU @ 2.10GHz
CPU Usage: 12.5%
====================
Memory
====================
               total        used        free      shared  buff/cache   available
Mem:            62Gi        20Gi        30Gi       1.0Gi        12Gi        41Gi
Swap:          8.0Gi          0B       8.0Gi
Used: 32.26%
====================
Disk Model and Capacity:
NAME   MODEL              SIZE TYPE MOUNTPOINT
sda    PERC H730P Mini    446G disk
├─sda1                      1G part /boot
└─sda2                    445G part /
sr0    DVD-ROM DV-28S-W  1024M rom

Filesystem      Size  Used Avail Use% Mounted on
/dev/sda2       440G   98G  320G  24% /
total           440G   98G  320G  24% -
RAID Configuration:
PERC H730P Mini (Embedded) RAID-1
====================
Network Interfaces:
1: lo: <LOOPBACK,UP,LOWER_UP> mtu 65536 qdisc noqueue state UNKNOWN
    link/loopback 00:00:00:00:00:00 brd 00:00:00:00:00:00
2: eno1: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc mq state UP
    link/ether 3c:ec:ef:12:34:56 brd ff:ff:ff:ff:ff:ff
3: eno2: <BROADCAST,MULTICAST> mtu 1500 qdisc mq state DOWN
    link/ether 3c:ec:ef:12:34:57 brd ff:ff:ff:ff:ff:ff
Interface Count: 3
IP Addresses:
lo: 127.0.0.1/8
eno1: 10.20.0.5/24
default via 10.20.0.1 dev eno1 proto static
====================
DNS Configuration
--- /etc/resolv.conf ---
nameserver 10.20.0.2
nameserver 8.8.8.8
--- NetworkManager ---
IP4.DNS[1]: 10.20.0.2
IP4.DNS[2]: 1.1.1.1
====================
Top Installed Applications:
1 nginx 1.18.0-6ubuntu14
2 postgresql-14 14.10-0ubuntu0
3 nginx 1.18.0-6ubuntu14
====================
Running Services:
nginx.service                 loaded active running A high performance web server
ssh.service                   loaded active running OpenBSD Secure Shell server
cron.service                  loaded active exited  Regular background program
====================
Open Ports:
LISTEN 0      511          0.0.0.0:80         0.0.0.0:*
LISTEN 0      128          0.0.0.0:22         0.0.0.0:*
LISTEN 0      511          0.0.0.0:80         0.0.0.0:*
"""

WINDOWS_REPORT = """\
1. OPERATING SYSTEM
Caption : Microsoft Windows Server 2019 Standard
Version : 10.0.17763
BuildNumber : 17763
OSArchitecture : 64-bit
CSName : WIN-DB01
TotalPhysicalMemory : 16777216
FreePhysicalMemory : 4194304

2. PROCESSOR
Name : Intel(R) Xeon(R) Silver 4210 CPU @ 2.20GHz
LoadPercentage : 10
Name : Intel(R) Xeon(R) Silver 4210 CPU @ 2.20GHz
LoadPercentage : 21

3. BIOS
SMBIOSBIOSVersion : 2.17.0
ReleaseDate : 20230315000000.000000+000

6. PHYSICAL DISKS
Model : DELL PERC H730P Mini SCSI Disk Device
Size : 500107862016
MediaType : Fixed hard disk media

7. LOGICAL DISKS
DeviceID : C:
Size : 107374182400
FreeSpace : 53687091200
FileSystem : NTFS
DeviceID : D:
Size : 214748364800
FreeSpace : 161061273600
FileSystem : NTFS

8. SERVICES
Status   Name               DisplayName
------   ----               -----------
Running  MSSQLSERVER        SQL Server (MSSQLSERVER)
Stopped  Spooler            Print Spooler
Running  W32Time            Windows Time

9. NETWORK ADAPTERS
Name : Intel(R) Ethernet 10G 2P X520 Adapter
NetConnectionStatus : 2
Name : WAN Miniport (IP)
NetConnectionStatus : 7
IPAddress : {10.30.0.15, fe80::1c2d:3e4f:5a6b:7c8d}
IPSubnet : {255.255.255.0, 64}
DefaultIPGateway : {10.30.0.1}
DNSServerSearchOrder : {10.30.0.2, 10.30.0.3}
MACAddress : 3C:EC:EF:AA:BB:CC

10. OPEN PORTS
  TCP    0.0.0.0:1433           0.0.0.0:0              LISTENING
  TCP    0.0.0.0:3389           0.0.0.0:0              LISTENING
  TCP    10.30.0.15:49712       10.30.0.40:443         ESTABLISHED

18. INSTALLED PRODUCTS
Name : Microsoft SQL Server 2019 (64-bit)
Version : 15.0.2000.5
Name : Microsoft Visual C++ 2019 X64 Minimum Runtime - 14.29.30133
Version : 14.29.30133
"""


@pytest.fixture
def linux_report():
    return LINUX_REPORT


@pytest.fixture
def windows_report():
    return WINDOWS_REPORT
