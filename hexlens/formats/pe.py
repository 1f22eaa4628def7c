"""
hexlens PE Format

Microsoft Portable Executable (EXE, DLL, OCX). The DOS header points at
the PE signature; the bytes in between (the DOS stub) are read as stray
data of the DOS header record. PE32 and PE32+ differ only in the width of
a handful of optional-header fields, declared here as alternatives gated
on OptionalStandardHeader.Magic.
"""

from __future__ import annotations

from hexlens.definition import (
    Condition,
    FieldDefinition,
    FormatDefinition,
    OptionalFieldDefinition,
    RecordDefinition,
    RepeatedRecordDefinition,
)

PE32_MAGIC = bytes([0x0B, 0x01])
PE32_PLUS_MAGIC = bytes([0x0B, 0x02])

MACHINES = {
    0x014C: "Intel 386",
    0x0166: "MIPS little endian",
    0x01C0: "ARM little endian",
    0x01C4: "ARM Thumb-2",
    0x0200: "Intel Itanium",
    0x8664: "x64",
    0xAA64: "ARM64",
}

SUBSYSTEMS = {
    1: "Native",
    2: "Windows GUI",
    3: "Windows console",
    9: "Windows CE GUI",
    10: "EFI application",
    14: "Xbox",
}

DATA_DIRECTORIES = (
    "Export Table", "Import Table", "Resource Table", "Exception Table",
    "Certificate Table", "Base Relocation Table", "Debug", "Architecture",
    "Global Ptr", "TLS Table", "Load Config Table", "Bound Import",
    "IAT", "Delay Import Descriptor", "CLR Runtime Header", "Reserved",
)


def _pe32(name: str, size: int = 4) -> FieldDefinition:
    return OptionalFieldDefinition(name, size, [Condition("OptionalStandardHeader.Magic", [PE32_MAGIC])])


def _pe32_plus(name: str, size: int = 8) -> FieldDefinition:
    return OptionalFieldDefinition(name, size, [Condition("OptionalStandardHeader.Magic", [PE32_PLUS_MAGIC])])


def pe_format() -> FormatDefinition:
    dos_signature = FieldDefinition("Signature", 2)
    dos_signature.set_description_for_value(b"MZ", "DOS executable")

    dos_header = RecordDefinition("DOSHeader", "PESignatureOffset", [
        dos_signature,
        FieldDefinition("Other", 58),
        FieldDefinition("PESignatureOffset", 4),
    ], description="MS-DOS header and stub")

    pe_signature = FieldDefinition("Signature", 4)
    pe_signature.set_description_for_value(b"PE\x00\x00", "PE signature")

    signature = RecordDefinition("PESignature", 4, [pe_signature], description="PE signature")

    machine = FieldDefinition("Machine", 2)
    for value, label in MACHINES.items():
        machine.set_description_for_value(value.to_bytes(2, "little"), label)

    coff_header = RecordDefinition("COFFHeader", 20, [
        machine,
        FieldDefinition("NumberOfSections", 2),
        FieldDefinition("TimeDateStamp", 4),
        FieldDefinition("PointerToSymbolTable", 4),
        FieldDefinition("NumberOfSymbols", 4),
        FieldDefinition("SizeOfOptionalHeader", 2),
        FieldDefinition("Characteristics", 2),
    ], description="COFF file header")

    magic = FieldDefinition("Magic", 2)
    magic.set_description_for_value(PE32_MAGIC, "PE32")
    magic.set_description_for_value(PE32_PLUS_MAGIC, "PE32+")

    # PE32+ drops BaseOfData, so the record is declared at its smaller size
    standard_header = RecordDefinition("OptionalStandardHeader", 24, [
        magic,
        FieldDefinition("MajorLinkerVersion", 1),
        FieldDefinition("MinorLinkerVersion", 1),
        FieldDefinition("SizeOfCode", 4),
        FieldDefinition("SizeOfInitializedData", 4),
        FieldDefinition("SizeOfUninitializedData", 4),
        FieldDefinition("AddressOfEntryPoint", 4),
        FieldDefinition("BaseOfCode", 4),
        _pe32("BaseOfData"),
    ], description="Optional header standard fields")

    subsystem = FieldDefinition("Subsystem", 2)
    for value, label in SUBSYSTEMS.items():
        subsystem.set_description_for_value(value.to_bytes(2, "little"), label)

    # Only one of each PE32 / PE32+ pair is read
    windows_header = RecordDefinition("OptionalWinSpecificHeader", 68, [
        _pe32("ImageBase"),
        _pe32_plus("ImageBase"),
        FieldDefinition("SectionAlignment", 4),
        FieldDefinition("FileAlignment", 4),
        FieldDefinition("MajorOperatingSystemVersion", 2),
        FieldDefinition("MinorOperatingSystemVersion", 2),
        FieldDefinition("MajorImageVersion", 2),
        FieldDefinition("MinorImageVersion", 2),
        FieldDefinition("MajorSubsystemVersion", 2),
        FieldDefinition("MinorSubsystemVersion", 2),
        FieldDefinition("Win32VersionValue", 4),
        FieldDefinition("SizeOfImage", 4),
        FieldDefinition("SizeOfHeaders", 4),
        FieldDefinition("CheckSum", 4),
        subsystem,
        FieldDefinition("DllCharacteristics", 2),
        _pe32("SizeOfStackReserve"),
        _pe32_plus("SizeOfStackReserve"),
        _pe32("SizeOfStackCommit"),
        _pe32_plus("SizeOfStackCommit"),
        _pe32("SizeOfHeapReserve"),
        _pe32_plus("SizeOfHeapReserve"),
        _pe32("SizeOfHeapCommit"),
        _pe32_plus("SizeOfHeapCommit"),
        FieldDefinition("LoaderFlags", 4),
        FieldDefinition("NumberOfRvaAndSizes", 4),
    ], description="Optional header Windows-specific fields")

    data_directory = RepeatedRecordDefinition("DataDirectory", 8, [
        FieldDefinition("VirtualAddress", 4),
        FieldDefinition("Size", 4),
    ], repeat="OptionalWinSpecificHeader.NumberOfRvaAndSizes",
        description="Data directory entry, in order: " + ", ".join(DATA_DIRECTORIES))

    section_header = RepeatedRecordDefinition("SectionHeader", 40, [
        FieldDefinition("Name", 8),
        FieldDefinition("VirtualSize", 4),
        FieldDefinition("VirtualAddress", 4),
        FieldDefinition("SizeOfRawData", 4),
        FieldDefinition("PointerToRawData", 4),
        FieldDefinition("PointerToRelocations", 4),
        FieldDefinition("PointerToLinenumbers", 4),
        FieldDefinition("NumberOfRelocations", 2),
        FieldDefinition("NumberOfLinenumbers", 2),
        FieldDefinition("Characteristics", 4),
    ], repeat="COFFHeader.NumberOfSections", description="Section table entry")

    return FormatDefinition(
        "Microsoft Portable Executable",
        [dos_header, signature, coff_header, standard_header, windows_header,
         data_directory, section_header],
        description="Microsoft's Portable Executable (PE) format",
        specification_url="https://docs.microsoft.com/en-us/windows/win32/debug/pe-format",
    )
