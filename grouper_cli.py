#!/usr/bin/env python
"""
Command-line interface for CHS-DRG grouping.

Groups a single case given on the command line, or a CSV file of cases.
"""

import argparse
import logging
import sys

from pydantic import ValidationError

from chs_drg_grouper import DRGGrouper, build_case, group_case_file
from chs_drg_grouper.batch import CaseParseError
from chs_drg_grouper.config import DEFAULT_SEPARATOR, GrouperSettings, default_data_directory
from chs_drg_grouper.rules import RuleTableError


def build_grouper(settings: GrouperSettings) -> DRGGrouper:
    return DRGGrouper(
        data_directory=settings.data_directory,
        strict_rule_types=settings.strict_rule_types,
    )


def group_single(args, settings: GrouperSettings):
    """Group one case given as positional fields."""
    grouper = build_grouper(settings)

    case = build_case(
        args.id,
        args.main_dis,
        args.main_opt,
        args.other_dis,
        args.other_opt,
        args.sex,
        args.age,
        args.weight,
        separator=settings.separator,
    )
    result = grouper.assign_drg(case)

    if args.verbose:
        print("\n" + "=" * 60)
        print("CHS-DRG GROUPING RESULT")
        print("=" * 60)
        print(f"Case:      {result.case_id}")
        print(f"MDC:       {result.mdc}")
        print(f"ADRG:      {result.adrg}")
        print(f"Type:      {result.group_type.value}")
        print(f"Severity:  {result.severity.value if result.severity else 'n/a'}")
        print("=" * 60)

    print(f"DRG: {result.drg}")


def group_batch(args, settings: GrouperSettings):
    """Group every case in a CSV file."""
    grouper = build_grouper(settings)

    count = group_case_file(grouper, args.input, args.output, separator=settings.separator)
    print(f"Grouped {count} cases, saved to {args.output}")


def main():
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="CHS-DRG Grouper CLI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Group one case (id, main dx, main procedure, other dx, other procedures, sex, age, weight)
  %(prog)s single 0001 I21.000 "" "J96.000|E87.100" "" 1 65 0

  # Group a CSV file of cases
  %(prog)s batch cases.csv grouped.csv

  # Use another scheme release
  %(prog)s --data-dir /opt/chs-drg/v1.1 batch cases.csv grouped.csv
        """
    )
    parser.add_argument('--data-dir', default=None,
                        help=f'Rule-table directory (default: $CHS_DRG_DATA_DIR or {default_data_directory()})')
    parser.add_argument('--separator', default=DEFAULT_SEPARATOR,
                        help='Separator for multi-valued fields (default: |)')
    parser.add_argument('--lenient-rule-types', action='store_true',
                        help='Treat unknown ADRG rule types as never matching instead of failing')
    parser.add_argument('--log-level', default='WARNING',
                        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
                        help='Logging level (default: WARNING)')

    subparsers = parser.add_subparsers(dest='command', help='Command to execute')

    # Single-case command
    single_parser = subparsers.add_parser('single', help='Group a single case')
    single_parser.add_argument('id', help='Case identifier')
    single_parser.add_argument('main_dis', help='Principal diagnosis code ("" if missing)')
    single_parser.add_argument('main_opt', help='Principal procedure code ("" if none)')
    single_parser.add_argument('other_dis', help='Other diagnosis codes joined by the separator')
    single_parser.add_argument('other_opt', help='Other procedure codes joined by the separator')
    single_parser.add_argument('sex', help='0 = female, 1 = male')
    single_parser.add_argument('age', help='Age in years (days / 365 for infants)')
    single_parser.add_argument('weight', help='Weight')
    single_parser.add_argument('--verbose', '-v', action='store_true',
                               help='Show the category, ADRG and severity')
    single_parser.set_defaults(func=group_single)

    # Batch command
    batch_parser = subparsers.add_parser('batch', help='Group a CSV file of cases')
    batch_parser.add_argument('input', help='Input case CSV')
    batch_parser.add_argument('output', help='Output CSV (input columns plus code)')
    batch_parser.set_defaults(func=group_batch)

    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(asctime)s - %(levelname)s - %(message)s'
    )

    try:
        settings_fields = {
            'strict_rule_types': not args.lenient_rule_types,
            'separator': args.separator,
        }
        if args.data_dir:
            settings_fields['data_directory'] = args.data_dir
        settings = GrouperSettings(**settings_fields)

        args.func(args, settings)

    except (RuleTableError, CaseParseError, ValidationError, FileNotFoundError) as e:
        print(f"\nERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
