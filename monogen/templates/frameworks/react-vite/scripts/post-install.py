"""Reminds the user which UI library ended up in the app."""

from monogen.utils import print_info


def exec(config, frameworks, packages):
    ui = [
        selection.package
        for selection in config.selected_packages
        if packages.get_by_name(selection.package).is_ui_library
    ]
    if ui:
        print_info(f"{config.app_name}: UI library {', '.join(ui)} added")
