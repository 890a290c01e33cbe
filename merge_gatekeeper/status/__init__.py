"""Validation of the commit statuses and check runs on a ref, and its report."""