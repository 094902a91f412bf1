"""Doctor availability and reservation engine"""
