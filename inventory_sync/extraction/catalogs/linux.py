"""
Linux inventory report catalog.

Reports are produced by the Linux collector script: ``lscpu``/``/proc/cpuinfo``,
``free -h``, ``lsblk``, ``df -h --total``, ``ip addr``, ``ip route``, resolver
configuration dumps, ``systemctl`` and ``ss -tlnp`` output, separated by
``====================`` banners.
"""

import re

from inventory_sync.extraction.helpers import collect, first_group, join_or_na, section, unique
from inventory_sync.extraction.identifiers import rack_field, slot_field
from inventory_sync.extraction.rules import NOT_AVAILABLE, build_rule_set

DISK_SECTION_RE = re.compile(r"Disk Model and Capacity:[\s\S]*?(?=\n\s*\n|={20}|\Z)")
APPS_SECTION_RE = re.compile(r"Top Installed Applications:([\s\S]*?)(?=\n={20}|\Z)")

IPV4_RE = re.compile(r"^(?:[0-9]{1,3}\.){3}[0-9]{1,3}$")
IPV6_RE = re.compile(r"^(?:[0-9a-fA-F]{0,4}:){2,7}[0-9a-fA-F]{0,4}$")
ADDRESS_TOKEN_RE = re.compile(r"^[0-9a-fA-F:.]+$")

DEVICE_TYPES = ("disk", "part", "rom", "lvm")


def memory_summary(content: str, filename: str) -> str:
    match = re.search(r"Mem:\s+([\d.]+[GMK]i?)\s+([\d.]+[GMK]i?)", content)
    if not match:
        return NOT_AVAILABLE
    return f"TOTAL {match.group(1)}, USED {match.group(2)}"


def disk_types(content: str, filename: str) -> str:
    block = section(content, DISK_SECTION_RE)
    types = [t.lower() for t in collect(block, r"\s(\b(?:disk|rom|lvm|part)\b)\s*", re.IGNORECASE)]
    return join_or_na(unique(types))


def disk_models(content: str, filename: str) -> str:
    block = section(content, DISK_SECTION_RE)
    models = collect(block, r"^\s*\S+\s+(.+?)\s+\d+(?:\.\d+)?[GMKTB]\s+(?:disk|rom)", re.MULTILINE)
    return join_or_na(models)


def partitions(content: str, filename: str) -> str:
    """One 'name (model, size, type, mount)' entry per lsblk device line."""
    block = section(content, DISK_SECTION_RE)
    if not block:
        return NOT_AVAILABLE

    entries = []
    for raw in block.splitlines():
        line = raw.strip()
        if not re.match(r"^(?:[├└─]*\s*)?(sd|nvme|vd|sr)\w*", line, re.IGNORECASE):
            continue

        parts = re.sub(r"[├└─│]+", "", line).strip().split()
        # TYPE is the last device-type token; SIZE precedes it, MOUNTPOINT follows
        kinds = [i for i, part in enumerate(parts) if part.lower() in DEVICE_TYPES]
        if not kinds:
            continue
        type_at = kinds[-1]

        model = " ".join(parts[1 : type_at - 1])
        size = parts[type_at - 1] if type_at >= 2 else ""
        mount = " ".join(parts[type_at + 1 :])

        details = ", ".join(item for item in (model, size, parts[type_at].lower(), mount) if item)
        entries.append(f"{parts[0]} ({details})")

    return join_or_na(entries, separator="; ")


def interface_names(content: str, filename: str) -> str:
    return join_or_na(collect(content, r"[\n\r]\s*\d+:\s*([\w-]+):\s*<[^>]+>"))


def ip_addresses(content: str, filename: str) -> str:
    return join_or_na(unique(collect(content, r"\w+:\s*(\d+\.\d+\.\d+\.\d+/\d+)")))


def _split_addresses(text: str, separators: str = r"\s+"):
    return [token.strip() for token in re.split(separators, text.strip()) if token.strip()]


def dns_servers(content: str, filename: str) -> str:
    """
    Name servers gathered from every resolver source the collector dumps.

    Sources, in order: the collector's own "DNS Servers (from ...)" block,
    /etc/resolv.conf, systemd-resolved, NetworkManager, DHCP leases, netplan,
    /etc/network/interfaces and ifcfg network scripts. Only valid IPv4/IPv6
    addresses are kept, de-duplicated in discovery order.
    """
    found = []

    block = section(content, r"DNS Servers \(from [^)]+\):\n([\s\S]*?)(?=\n\n|DNS Configuration|\Z)")
    if block:
        for line in block.strip().splitlines():
            match = re.search(r"[0-9a-fA-F:.]+", line.strip())
            if match:
                found.append(match.group(0))

    block = section(content, r"--- /etc/resolv\.conf ---\n([\s\S]*?)(?=\n---|\Z)")
    found.extend(collect(block, r"nameserver\s+([0-9a-fA-F:.]+)"))

    block = section(content, r"--- systemd-resolved.*?---\n([\s\S]*?)(?=\n---|\Z)")
    for servers in collect(block, r"DNS Servers?:\s*([0-9a-fA-F:.\s]+)", re.IGNORECASE):
        found.extend(ip for ip in _split_addresses(servers) if ADDRESS_TOKEN_RE.match(ip))

    block = section(content, r"--- NetworkManager.*?---\n([\s\S]*?)(?=\n---|\Z)")
    found.extend(collect(block, r"IP[46]\.DNS\[\d+\]:\s*([0-9a-fA-F:.]+)"))

    for lease in re.finditer(r"--- DHCP leases.*?---\n[\s\S]*?(?=\n---|\Z)", content):
        for servers in collect(lease.group(0), r"domain-name-servers\s+([0-9a-fA-F:.,\s]+);"):
            found.extend(ip for ip in _split_addresses(servers, r"[,\s]+") if ADDRESS_TOKEN_RE.match(ip))

    block = section(content, r"--- /etc/netplan/ ---\n([\s\S]*?)(?=\n---|\Z)")
    if block:
        for addresses in collect(block, r"addresses:\s*\[([\s\S]*?)\]"):
            found.extend(re.findall(r"[0-9a-fA-F:.]+", addresses))
        found.extend(collect(block, r"^\s*-\s*([0-9a-fA-F:.]+)", re.MULTILINE))

    block = section(content, r"--- /etc/network/interfaces ---\n([\s\S]*?)(?=\n---|\Z)")
    for servers in collect(block, r"dns-nameservers\s+([0-9a-fA-F:.\s]+)"):
        found.extend(ip for ip in _split_addresses(servers) if ADDRESS_TOKEN_RE.match(ip))

    block = section(content, r"--- /etc/sysconfig/network-scripts/ ---\n([\s\S]*?)(?=\n---|\Z)")
    found.extend(collect(block, r"DNS\d*=[\"']?([0-9a-fA-F:.]+)[\"']?"))

    valid = [ip for ip in unique(found) if IPV4_RE.match(ip) or IPV6_RE.match(ip)]
    return join_or_na(valid)


def mac_addresses(content: str, filename: str) -> str:
    return join_or_na(unique(collect(content, r"link/ether\s+([a-f0-9:]+)", re.IGNORECASE)), limit=3)


def major_applications(content: str, filename: str) -> str:
    block = section(content, APPS_SECTION_RE)
    packages = collect(block, r"^\s*\d+\s+([a-zA-Z0-9\-_.]+)\s+", re.MULTILINE)
    return join_or_na(unique(packages), limit=8)


def running_services(content: str, filename: str) -> str:
    return join_or_na(collect(content, r"(\S+\.service)\s+loaded\s+active\s+running"), limit=10)


def open_ports(content: str, filename: str) -> str:
    return join_or_na(unique(collect(content, r"LISTEN\s+\d+\s+\d+\s+[\d.]+:(\d+)")), limit=15)


def disk_usage(content: str, filename: str) -> str:
    """Use% of the ``df -h --total`` total line."""
    return first_group(content, r"^\s*total\s+\S+\s+\S+\s+\S+\s+(\d+(?:\.\d+)?%)", re.MULTILINE | re.IGNORECASE) or NOT_AVAILABLE


FUNCTIONS = {
    "rack_number": rack_field,
    "slot_number": slot_field,
    "memory_summary": memory_summary,
    "disk_types": disk_types,
    "disk_models": disk_models,
    "partitions": partitions,
    "disk_usage": disk_usage,
    "interface_names": interface_names,
    "ip_addresses": ip_addresses,
    "dns_servers": dns_servers,
    "mac_addresses": mac_addresses,
    "major_applications": major_applications,
    "running_services": running_services,
    "open_ports": open_ports,
}

RULES = [
    {"field": "Rack Number", "function": "rack_number"},
    {"field": "U Slot Number", "function": "slot_number"},
    {"field": "Processor (CPU)", "pattern": r"^\s*model\s*name\s*[:\-]?\s*(.+)$", "flags": "im"},
    {"field": "CPU Usage (%)", "pattern": r"CPU\s+Usage:\s*([\d.]+)%"},
    {"field": "Memory", "function": "memory_summary"},
    {"field": "Memory Usage (%)", "pattern": r"Used:\s*([\d.]+)%"},
    {"field": "Disk Type", "function": "disk_types"},
    {"field": "Disk Model", "function": "disk_models"},
    {"field": "Disk Capacity", "pattern": r"^\s*total\s+([\d.]+[KMGT])", "flags": "im"},
    {
        "field": "RAID Configuration",
        "pattern": r"RAID Configuration:\s*([\s\S]*?)(?=\n[A-Z][^\n]*:|={20}|\Z)",
    },
    {"field": "Partitions", "function": "partitions"},
    {"field": "Disk Usage (%)", "function": "disk_usage"},
    {"field": "OS Name and Version", "pattern": r"OS Name & Version\s*:\s*(.+)"},
    {"field": "Kernel/Build Version", "pattern": r"Kernel Version\s*:\s*(.+)"},
    {"field": "Architecture", "pattern": r"Architecture\s*:\s*(.+)"},
    {"field": "Firmware Version", "pattern": r"Firmware Version\s*:\s*(.+)"},
    {"field": "Firmware Date", "pattern": r"Firmware Release\s*:\s*(.+)"},
    {"field": "Hostname", "pattern": r"Hostname\s*:\s*([^\n\r]+)"},
    {"field": "Interface Names", "function": "interface_names"},
    {"field": "IP Address and Subnet Mask", "function": "ip_addresses"},
    {"field": "Interface Count", "pattern": r"Interface Count:\s*(\d+)", "flags": "i"},
    {"field": "IP Gateway", "pattern": r"default via\s*([\d.]+)"},
    {"field": "IP DNS", "function": "dns_servers"},
    {"field": "MAC Address", "function": "mac_addresses"},
    {"field": "Major Applications", "function": "major_applications"},
    {"field": "Running Services", "function": "running_services"},
    {"field": "Open Ports", "function": "open_ports"},
]

RULE_SET = build_rule_set("linux", RULES, FUNCTIONS)
