"""
Windows inventory report catalog.

Reports are produced by the PowerShell collector: numbered WMI/CIM sections
("6. PHYSICAL DISKS", "7. LOGICAL DISKS", "9. NETWORK ADAPTERS",
"18. INSTALLED PRODUCTS", ...) printed as ``Property : Value`` lists.
Reports are frequently UTF-16 encoded; decoding happens in the report reader.
"""

import re
from typing import List

from inventory_sync.extraction.helpers import bytes_to_gb, collect, first_group, join_or_na, percent, section, unique
from inventory_sync.extraction.identifiers import rack_field, slot_field
from inventory_sync.extraction.rules import NOT_AVAILABLE, build_rule_set


def _numbered_section(number: int, title: str) -> "re.Pattern[str]":
    return re.compile(rf"{number}\. {title}[\s\S]*?(?=\n\s*{number + 1}\.|\Z)")


PHYSICAL_DISKS_RE = _numbered_section(6, "PHYSICAL DISKS")
LOGICAL_DISKS_RE = _numbered_section(7, "LOGICAL DISKS")
NETWORK_ADAPTERS_RE = _numbered_section(9, "NETWORK ADAPTERS")
INSTALLED_PRODUCTS_RE = _numbered_section(18, "INSTALLED PRODUCTS")


def _braced_list(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


def _physical_memory(content: str):
    total = first_group(content, r"TotalPhysicalMemory\s*:\s*(\d+)")
    free = first_group(content, r"FreePhysicalMemory\s*:\s*(\d+)")
    if total is None or free is None:
        return None
    return int(total), int(free)


def cpu_usage(content: str, filename: str) -> str:
    """Average LoadPercentage over every processor entry."""
    loads = [int(value) for value in collect(content, r"LoadPercentage\s*:\s*(\d+)")]
    if not loads:
        return NOT_AVAILABLE
    return f"{sum(loads) / len(loads):.2f}%"


def memory_summary(content: str, filename: str) -> str:
    memory = _physical_memory(content)
    if memory is None:
        return NOT_AVAILABLE
    total, free = memory
    return f"TOTAL {total / 1024 / 1024:.2f}GB, USED {(total - free) / 1024 / 1024:.2f}GB"


def memory_usage(content: str, filename: str) -> str:
    memory = _physical_memory(content)
    if memory is None or not memory[0]:
        return NOT_AVAILABLE
    total, free = memory
    return percent(total - free, total)


def disk_types(content: str, filename: str) -> str:
    markers = (
        ("SCSI", "SCSI"),
        ("USB", "USB"),
        ("Fixed hard disk", "Fixed Disk"),
        ("Removable Media", "Removable"),
    )
    return join_or_na(label for marker, label in markers if marker in content)


def disk_models(content: str, filename: str) -> str:
    block = section(content, PHYSICAL_DISKS_RE)
    return join_or_na(unique(collect(block, r"Model\s*:\s*([^\r\n]+)")))


def disk_capacity(content: str, filename: str) -> str:
    block = section(content, PHYSICAL_DISKS_RE)
    sizes = [int(value) for value in collect(block, r"Size\s*:\s*(\d+)")]
    if not sizes:
        return NOT_AVAILABLE
    return f"{bytes_to_gb(sum(sizes))}GB"


def raid_configuration(content: str, filename: str) -> str:
    if "PERC" not in content and "RAID" not in content:
        return NOT_AVAILABLE
    match = re.search(r"(?:PERC|RAID)[^\r\n]*", content)
    return match.group(0).strip() if match else "RAID Detected"


def partitions(content: str, filename: str) -> str:
    block = section(content, LOGICAL_DISKS_RE)
    if not block:
        return NOT_AVAILABLE

    entries = []
    drives = re.finditer(
        r"DeviceID\s*:\s*([A-Z]:)[\s\S]*?Size\s*:\s*(\d+)[\s\S]*?FreeSpace\s*:\s*(\d+)[\s\S]*?FileSystem\s*:\s*([^\r\n]+)",
        block,
    )
    for match in drives:
        drive, size, free, file_system = match.groups()
        entries.append(
            f"{drive} ({bytes_to_gb(int(size))}GB, Free: {bytes_to_gb(int(free))}GB, {file_system.strip()})"
        )
    return join_or_na(entries, separator="; ")


def disk_usage(content: str, filename: str) -> str:
    block = section(content, LOGICAL_DISKS_RE)
    if not block:
        return NOT_AVAILABLE

    total_size = total_used = 0
    for match in re.finditer(r"Size\s*:\s*(\d+)[\s\S]*?FreeSpace\s*:\s*(\d+)", block):
        size, free = int(match.group(1)), int(match.group(2))
        total_size += size
        total_used += size - free

    if not total_size:
        return NOT_AVAILABLE
    return percent(total_used, total_size)


def os_name(content: str, filename: str) -> str:
    name = first_group(content, r"Caption\s*:\s*(Microsoft Windows[^\r\n]+)")
    if not name:
        return NOT_AVAILABLE
    version = first_group(content, r"^\s*Version\s*:\s*([^\r\n]+)", re.MULTILINE)
    return f"{name} ({version})" if version else name


def interface_names(content: str, filename: str) -> str:
    block = section(content, NETWORK_ADAPTERS_RE)
    names = [
        name
        for name in collect(block, r"Name\s*:\s*([^\r\n]+)")
        if "Miniport" not in name and "Kernel" not in name
    ]
    return join_or_na(unique(names))


def ip_addresses(content: str, filename: str) -> str:
    """IPv4/IPv6 addresses paired positionally with their subnets."""
    addresses = []
    for value in collect(content, r"IPAddress\s*:\s*\{([^}]+)\}"):
        addresses.extend(ip for ip in _braced_list(value) if not ip.startswith("fe80") and ip != "::1")
    addresses = unique(addresses)

    subnets = []
    for value in collect(content, r"IPSubnet\s*:\s*\{([^}]+)\}"):
        subnets.extend(_braced_list(value))

    paired = [
        f"{ip}/{subnets[i]}" if i < len(subnets) else ip
        for i, ip in enumerate(addresses)
    ]
    return join_or_na(paired)


def interface_count(content: str, filename: str) -> str:
    block = section(content, NETWORK_ADAPTERS_RE)
    if block is None:
        return NOT_AVAILABLE
    return str(len(re.findall(r"NetConnectionStatus\s*:", block)))


def dns_servers(content: str, filename: str) -> str:
    servers = []
    for value in collect(content, r"DNSServerSearchOrder\s*:\s*\{([^}]+)\}"):
        servers.extend(_braced_list(value))
    return join_or_na(unique(servers))


def mac_addresses(content: str, filename: str) -> str:
    macs = [mac for mac in collect(content, r"MACAddress\s*:\s*([A-F0-9:-]+)", re.IGNORECASE) if mac != "00:00:00:00:00:00"]
    return join_or_na(unique(macs), limit=3)


def major_applications(content: str, filename: str) -> str:
    block = section(content, INSTALLED_PRODUCTS_RE)
    if not block:
        return NOT_AVAILABLE

    apps = []
    for match in re.finditer(r"Name\s*:\s*([^\r\n]+)[\s\S]*?Version\s*:\s*([^\r\n]+)", block):
        name, version = match.group(1).strip(), match.group(2).strip()
        if name and "Minimum Runtime" not in name and "Additional Runtime" not in name:
            apps.append(f"{name} ({version})")
    return join_or_na(unique(apps), limit=8)


def running_services(content: str, filename: str) -> str:
    """Get-Service table rows in the Running state."""
    return join_or_na(collect(content, r"^\s*Running\s+(\S+)", re.MULTILINE), limit=10)


def open_ports(content: str, filename: str) -> str:
    """Local ports of ``netstat -an`` LISTENING rows."""
    ports = collect(content, r"TCP\s+\S+:(\d+)\s+\S+\s+LISTENING", re.IGNORECASE)
    return join_or_na(unique(ports), limit=15)


FUNCTIONS = {
    "rack_number": rack_field,
    "slot_number": slot_field,
    "cpu_usage": cpu_usage,
    "memory_summary": memory_summary,
    "memory_usage": memory_usage,
    "disk_types": disk_types,
    "disk_models": disk_models,
    "disk_capacity": disk_capacity,
    "raid_configuration": raid_configuration,
    "partitions": partitions,
    "disk_usage": disk_usage,
    "os_name": os_name,
    "interface_names": interface_names,
    "ip_addresses": ip_addresses,
    "interface_count": interface_count,
    "dns_servers": dns_servers,
    "mac_addresses": mac_addresses,
    "major_applications": major_applications,
    "running_services": running_services,
    "open_ports": open_ports,
}

RULES = [
    {"field": "Rack Number", "function": "rack_number"},
    {"field": "U Slot Number", "function": "slot_number"},
    {"field": "Processor (CPU)", "pattern": r"^\s*Name\s*:\s*([^\r\n]+)", "flags": "m"},
    {"field": "CPU Usage (%)", "function": "cpu_usage"},
    {"field": "Memory", "function": "memory_summary"},
    {"field": "Memory Usage (%)", "function": "memory_usage"},
    {"field": "Disk Type", "function": "disk_types"},
    {"field": "Disk Model", "function": "disk_models"},
    {"field": "Disk Capacity", "function": "disk_capacity"},
    {"field": "RAID Configuration", "function": "raid_configuration"},
    {"field": "Partitions", "function": "partitions"},
    {"field": "Disk Usage (%)", "function": "disk_usage"},
    {"field": "OS Name and Version", "function": "os_name"},
    {"field": "Kernel/Build Version", "pattern": r"BuildNumber\s*:\s*([^\r\n]+)"},
    {"field": "Architecture", "pattern": r"OSArchitecture\s*:\s*([^\r\n]+)"},
    {"field": "Firmware Version", "pattern": r"SMBIOSBIOSVersion\s*:\s*([^\r\n]+)"},
    {"field": "Firmware Date", "pattern": r"ReleaseDate\s*:\s*([^\r\n]+)"},
    {"field": "Hostname", "pattern": r"(?:CSName|DNSHostName)\s*:\s*([^\r\n]+)"},
    {"field": "Interface Names", "function": "interface_names"},
    {"field": "IP Address and Subnet Mask", "function": "ip_addresses"},
    {"field": "Interface Count", "function": "interface_count"},
    {"field": "IP Gateway", "pattern": r"DefaultIPGateway\s*:\s*\{([^}]+)\}"},
    {"field": "IP DNS", "function": "dns_servers"},
    {"field": "MAC Address", "function": "mac_addresses"},
    {"field": "Major Applications", "function": "major_applications"},
    {"field": "Running Services", "function": "running_services"},
    {"field": "Open Ports", "function": "open_ports"},
]

RULE_SET = build_rule_set("windows", RULES, FUNCTIONS)
