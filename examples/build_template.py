#!/usr/bin/env python3
"""
Example pipeline: clone a template, boot it, shut it down and turn it into a new template

Usage:
    export VSPHERE_PASSWORD=your_password
    python examples/build_template.py build.yaml

build.yaml:
    connect:
      vcenter_server: vcenter.example.com
      username: administrator@vsphere.local
      password: ""            # taken from VSPHERE_PASSWORD when set
      datacenter: ""          # only datacenter when empty
      insecure_connection: true
    clone:
      template: ubuntu-base
      vm_name: ubuntu-build-01
      folder: builds
      linked_clone: false
    hardware:
      cpus: 2
      ram: 4096
    shutdown:
      timeout: 300
    convert_to_template: true
"""

import os
import sys
import argparse
import logging
from dataclasses import replace
from vmbuilder import VMBuilderClient, VMBuilderError, BuildConfig, load_build_config


logger = logging.getLogger("build_template")


def load_config(path: str) -> BuildConfig:
    """Load the build config; VSPHERE_PASSWORD overrides the file's password"""
    config = load_build_config(path, validate=False)
    password = os.getenv("VSPHERE_PASSWORD")
    if password:
        config = replace(config, connect=replace(config.connect, password=password))
    config.validate()
    return config


def discard_vm(vms, vm, name: str) -> None:
    """Power off and destroy a failed build, logging cleanup errors"""
    logger.warning(f"Build failed, destroying {name}")
    try:
        vms.power_off(vm)
    except VMBuilderError as e:
        logger.error(f"Failed to power off {name}: {e}")
    try:
        vms.destroy_vm(vm)
    except VMBuilderError as e:
        logger.error(f"Failed to destroy {name}: {e}")


def build(config: BuildConfig, ip_timeout: float) -> None:
    with VMBuilderClient(config.connect) as client:
        vms = client.vms
        vm = vms.clone_vm(config.clone)
        try:
            vms.configure_vm(vm, config.hardware)
            vms.power_on(vm)
            ip = vms.wait_for_ip(vm, timeout=ip_timeout)
            print(f"VM {config.clone.vm_name} is up at {ip}")

            # Guest provisioning goes here

            vms.start_shutdown(vm)
            vms.wait_for_shutdown(vm, config.shutdown.timeout, config.shutdown.poll_interval)
            if config.create_snapshot:
                vms.create_snapshot(vm)
            if config.convert_to_template:
                vms.convert_to_template(vm)
        except VMBuilderError:
            discard_vm(vms, vm, config.clone.vm_name)
            raise


def main():
    parser = argparse.ArgumentParser(description="Build a vSphere template")
    parser.add_argument("config", help="YAML build configuration")
    parser.add_argument("--ip-timeout", type=float, default=1800, help="Seconds to wait for an IP")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        build(load_config(args.config), args.ip_timeout)
    except VMBuilderError as e:
        print(f"❌ {e}")
        return 1

    print("✅ Build finished")
    return 0


if __name__ == "__main__":
    sys.exit(main())
