"""
CHS-DRG Grouper Usage Examples

This script demonstrates how to group inpatient case records into CHS-DRG
codes with the demonstration rule tables in data/.
"""

from pathlib import Path

from chs_drg_grouper import DRGGrouper, DrgCase, Sex

DATA_DIR = Path(__file__).parent.parent / "data"


def print_result(result):
    print(f"\nGrouping Result:")
    print(f"  MDC:      {result.mdc}")
    print(f"  ADRG:     {result.adrg} ({result.group_type.value})")
    print(f"  Severity: {result.severity.value if result.severity else 'n/a'}")
    print(f"  DRG:      {result.drg}")
    print()


def example_1_medical_case_with_mcc(grouper):
    """Example 1: Medical case refined by an MCC."""
    print("=" * 70)
    print("EXAMPLE 1: Acute Myocardial Infarction with MCC")
    print("=" * 70)

    result = grouper.assign_drg(DrgCase(
        case_id="EX-1",
        principal_diagnosis="I21.000",  # Acute myocardial infarction
        other_diagnoses=[
            "J96.000",  # Acute respiratory failure (MCC)
            "E87.100",  # Hypo-osmolality (CC)
        ],
        sex=Sex.MALE,
        age=68,
    ))

    print(f"\nPatient: 68-year-old male")
    print(f"Principal Diagnosis: I21.000")
    print(f"Other Diagnoses: J96.000 (MCC), E87.100 (CC)")
    print_result(result)


def example_2_excluded_complication(grouper):
    """Example 2: An MCC suppressed by the principal diagnosis."""
    print("=" * 70)
    print("EXAMPLE 2: Excluded Complication")
    print("=" * 70)

    result = grouper.assign_drg(DrgCase(
        case_id="EX-2",
        principal_diagnosis="I21.100",
        other_diagnoses=["J96.000"],  # Excluded for I21.100
        sex=Sex.FEMALE,
        age=74,
    ))

    print(f"\nPatient: 74-year-old female")
    print(f"Principal Diagnosis: I21.100")
    print(f"Other Diagnoses: J96.000 (excluded by the principal diagnosis)")
    print_result(result)


def example_3_qy_reclassification(grouper):
    """Example 3: Procedure case that lands in a medical group."""
    print("=" * 70)
    print("EXAMPLE 3: QY Reclassification")
    print("=" * 70)

    result = grouper.assign_drg(DrgCase(
        case_id="EX-3",
        principal_diagnosis="J18.900",  # Pneumonia
        principal_procedure="34.0401",  # Closed chest drainage
        sex=Sex.MALE,
        age=55,
    ))

    print(f"\nPatient: 55-year-old male")
    print(f"Principal Diagnosis: J18.900")
    print(f"Principal Procedure: 34.0401")
    print_result(result)


def example_4_newborn(grouper):
    """Example 4: Newborn claimed by MDCP."""
    print("=" * 70)
    print("EXAMPLE 4: Newborn")
    print("=" * 70)

    result = grouper.assign_drg(DrgCase(
        case_id="EX-4",
        principal_diagnosis="P07.300",  # Preterm infant
        sex=Sex.FEMALE,
        age=12 / 365,  # 12 days old
        weight=2100,
    ))

    print(f"\nPatient: 12-day-old female, 2100 g")
    print(f"Principal Diagnosis: P07.300")
    print_result(result)


def example_5_multiple_trauma(grouper):
    """Example 5: Injuries in two body regions."""
    print("=" * 70)
    print("EXAMPLE 5: Multiple Significant Trauma")
    print("=" * 70)

    result = grouper.assign_drg(DrgCase(
        case_id="EX-5",
        principal_diagnosis="S32.000",  # Lumbar spine fracture
        other_diagnoses=["S72.000"],    # Femoral neck fracture
        sex=Sex.MALE,
        age=41,
    ))

    print(f"\nPatient: 41-year-old male")
    print(f"Principal Diagnosis: S32.000")
    print(f"Other Diagnoses: S72.000")
    print_result(result)


def example_6_batch(grouper):
    """Example 6: Group several cases at once."""
    print("=" * 70)
    print("EXAMPLE 6: Batch Grouping")
    print("=" * 70)

    cases = [
        DrgCase(case_id="B-1", principal_diagnosis="I50.900",
                other_diagnoses=["N17.900"], sex=Sex.FEMALE, age=80),
        DrgCase(case_id="B-2", principal_diagnosis="K80.200", sex=Sex.MALE, age=47),
        DrgCase(case_id="B-3", other_diagnoses=["E87.100"], sex=Sex.MALE, age=47),
    ]

    print(f"\n{'Case':<8} {'MDC':<6} {'ADRG':<6} {'DRG':<6}")
    print("-" * 30)
    for result in grouper.assign_drgs(cases):
        print(f"{result.case_id:<8} {result.mdc:<6} {result.adrg:<6} {result.drg:<6}")
    print()


def main():
    """Run all examples."""
    print("\n")
    print("=" * 70)
    print("CHS-DRG GROUPER EXAMPLES")
    print("=" * 70)
    print()

    grouper = DRGGrouper(data_directory=DATA_DIR)

    example_1_medical_case_with_mcc(grouper)
    example_2_excluded_complication(grouper)
    example_3_qy_reclassification(grouper)
    example_4_newborn(grouper)
    example_5_multiple_trauma(grouper)
    example_6_batch(grouper)

    print("=" * 70)
    print("All examples completed successfully!")
    print("=" * 70)


if __name__ == "__main__":
    main()
