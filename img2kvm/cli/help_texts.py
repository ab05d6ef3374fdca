# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# img2kvm/cli/help_texts.py
from __future__ import annotations

# NOTE:
# Pure help text used by the argparse epilog. Keep it copy/paste runnable.

YAML_EXAMPLE = r"""# img2kvm configuration (YAML)
#
# Run:
# ./img2kvm.py --config openwrt.yaml
#
# Merge multiple configs (later overrides earlier), CLI flags override both:
# ./img2kvm.py --config base.yaml --config vm105.yaml -i 106
#
image_name: openwrt-24.10.2-x86-64-generic-squashfs-combined-efi.img.gz
vm_id: 105
storage: local-lvm # Proxmox storage pool
# workdir: /var/tmp/img2kvm # default: current directory
# overwrite: true # false = refuse to replace an existing decompressed file
# keep_temp: false # keep decompressed image + img2kvm_temp.qcow2
# lzma_memlimit: 64MiB # ceiling for legacy .lzma dictionaries
# qemu_img: qemu-img
# qm: qm
# verbose: 1
# log_file: ./img2kvm.log
"""

FEATURE_SUMMARY = """\
 • Inputs: .img/.iso as-is; .gz, .bz2/.bzip2, .xz, .lzma, .zip (first entry only)
 • Decompressed image: <workdir>/<name without last extension>, written atomically
 • Convert: qemu-img convert -f raw -O qcow2 -> <workdir>/img2kvm_temp.qcow2
 • Import: qm importdisk <vm-id> <qcow2> <storage>
 • Cleanup: temporary qcow2 and decompressed image removed after a successful import
"""
