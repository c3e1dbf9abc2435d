"""Record types served by ESGTrack and their import layouts."""

from __future__ import annotations

from esgtrack.categories.layout import (
    BulletList,
    CategoryDefinition,
    Column,
    KeyValueTable,
    Promotion,
    RowList,
    SummaryRows,
    SummaryRule,
    WideYearTable,
    YearTable,
)

# Every record type also accepts forecast and risk metrics entered by hand
COMMON_CATEGORIES = ("forecast", "risk")


def _categories(*names: str) -> tuple[str, ...]:
    return names + COMMON_CATEGORIES


IRRIGATION = CategoryDefinition(
    key="irrigation_efficiency",
    slug="irrigation",
    label="Irrigation Efficiency & Water Management",
    categories=_categories(
        "irrigation_water",
        "water_per_hectare",
        "effluent_discharged",
        "water_treatment",
        "water_sources",
    ),
    layout=(
        YearTable(
            columns=(
                Column("Total Irrigation Water (million ML)", "irrigation_water", subcategory="total"),
                Column("Water per Hectare (ML/ha)", "water_per_hectare", subcategory="total"),
                Column("Effluent Discharged (thousand ML)", "effluent_discharged", subcategory="total"),
                Column("Water Treatment for Chiredzi (million ML)", "water_treatment", subcategory="total"),
            ),
        ),
        BulletList("Water Sources", "water_sources", "Water Sources"),
    ),
    summary_rules=(
        SummaryRule("total_irrigation_water", "sum", "irrigation_water"),
        SummaryRule("avg_water_per_hectare", "avg", "water_per_hectare"),
        SummaryRule("total_effluent_discharged", "sum", "effluent_discharged"),
        SummaryRule("avg_water_treatment", "avg", "water_treatment"),
        SummaryRule("water_sources_count", "count", "water_sources"),
    ),
)

GOVERNANCE = CategoryDefinition(
    key="governance_board",
    slug="governance",
    label="Governance & Board",
    categories=_categories(
        "board_composition",
        "director_fees",
        "governance_framework",
        "governance_policies",
    ),
    layout=(
        RowList(
            "Board of Directors Composition",
            "board_composition",
            "Board of Directors",
            fields=(
                ("Name", "item"),
                ("Role", "role"),
                ("Type", "type"),
                ("Tenure", "tenure"),
                ("Appointed", "appointed"),
                ("Key Skills", "key_skills"),
            ),
        ),
        RowList(
            "Director Fees",
            "director_fees",
            "Director Fees",
            fields=(
                ("Fee Type", "item"),
                ("Non-Executive Directors", "non_executive"),
                ("Chairman", "chairman"),
            ),
        ),
        BulletList("Governance Framework", "governance_framework", "Governance Framework"),
        BulletList(
            "Key Governance Policies",
            "governance_policies",
            "Key Governance Policies",
            promotions=(
                Promotion("External Auditors:", "External Auditors", "governance_policies", "auditors"),
            ),
        ),
    ),
    summary_rules=(
        SummaryRule("board_size", "count", "board_composition"),
        SummaryRule("governance_framework_count", "count", "governance_framework"),
        SummaryRule("governance_policies_count", "count", "governance_policies"),
    ),
)

WASTE = CategoryDefinition(
    key="waste_management",
    slug="waste",
    label="Waste Management",
    categories=_categories(
        "waste_generation",
        "effluent_management",
        "packaging_consumption",
        "waste_management_initiatives",
    ),
    layout=(
        YearTable(
            columns=(
                Column("Recyclable Waste (tons)", "waste_generation", subcategory="recyclable"),
                Column("Boiler Ash (tons)", "waste_generation", subcategory="boiler_ash"),
                Column("General Waste (tons)", "waste_generation", subcategory="general"),
            ),
        ),
        YearTable(
            heading="Effluent Management",
            columns=(
                Column("Effluent Discharged (thousand ML)", "effluent_management", subcategory="effluent_discharged"),
                Column("Water Treatment (million ML)", "effluent_management", subcategory="water_treatment"),
            ),
        ),
        YearTable(
            heading="Packaging Material",
            columns=(
                Column("Liners (50kg bags)", "packaging_consumption", subcategory="liners", unit="bags"),
                Column("1-Tonne Bags", "packaging_consumption", subcategory="tonne_bags", unit="bags"),
                Column("Packaging Material", "packaging_consumption", subcategory="total", unit="tons"),
            ),
        ),
        BulletList(
            "Waste Management Measures",
            "waste_management_initiatives",
            "Waste Management Measures",
        ),
    ),
    summary_rules=(
        SummaryRule("total_recyclable_waste", "sum", "waste_generation", "recyclable"),
        SummaryRule("total_boiler_ash", "sum", "waste_generation", "boiler_ash"),
        SummaryRule("total_general_waste", "sum", "waste_generation", "general"),
        SummaryRule("avg_effluent_discharged", "avg", "effluent_management", "effluent_discharged"),
        SummaryRule("waste_initiatives_count", "count", "waste_management_initiatives"),
    ),
)

OVERALL_ESG = CategoryDefinition(
    key="overall_esg",
    slug="overall-esg",
    label="Overall ESG Performance",
    categories=_categories("environmental", "social", "governance", "highlights"),
    layout=(
        WideYearTable("ENVIRONMENTAL (E) METRICS", "environmental"),
        WideYearTable("SOCIAL (S) METRICS", "social"),
        KeyValueTable("GOVERNANCE (G) METRICS", "governance"),
        BulletList("KEY ESG HIGHLIGHTS", "highlights", "ESG Highlights"),
    ),
    summary_rules=(SummaryRule("highlights_count", "count", "highlights"),),
)

HEALTH_SAFETY = CategoryDefinition(
    key="health_safety",
    slug="health-safety",
    label="Health & Safety",
    categories=_categories("lti_metrics", "health_services", "certifications", "training_hours"),
    layout=(
        YearTable(
            heading="Health & Safety Metrics",
            columns=(
                Column("Lost Time Injuries (LTIs)", "lti_metrics", subcategory="lost_time_injuries", unit="injuries"),
                Column("LTI Frequency Rate", "lti_metrics", subcategory="lti_frequency_rate", unit="rate"),
                Column("Fatalities", "lti_metrics", subcategory="fatalities", unit="deaths"),
            ),
        ),
        WideYearTable("Health Services", "health_services"),
        BulletList("Certifications & Standards", "certifications", "Certifications & Standards"),
        KeyValueTable("Training Hours", "training_hours", value_column="Hours"),
    ),
    summary_rules=(
        SummaryRule("total_lost_time_injuries", "sum", "lti_metrics", "lost_time_injuries"),
        SummaryRule("latest_lti_frequency_rate", "latest", "lti_metrics", "lti_frequency_rate"),
        SummaryRule("total_fatalities", "sum", "lti_metrics", "fatalities"),
        SummaryRule("certifications_count", "count", "certifications"),
    ),
)

ENERGY = CategoryDefinition(
    key="energy_consumption",
    slug="energy",
    label="Energy Consumption & Renewables",
    categories=_categories(
        "bagasse_usage",
        "coal_consumption",
        "electricity_generated",
        "electricity_purchased",
        "electricity_exported",
        "solar_power_usage",
        "fuel_consumption",
        "solar_infrastructure",
        "year_over_year_change",
    ),
    layout=(
        YearTable(
            columns=(
                Column("Bagasse Usage (tons)", "bagasse_usage", "Bagasse Usage"),
                Column("Coal Consumption (tons)", "coal_consumption", "Coal Consumption"),
                Column("Electricity Generated (MWH)", "electricity_generated", "Electricity Generated"),
                Column("Electricity Purchased (MWH)", "electricity_purchased", "Electricity Purchased"),
                Column("Electricity Exported (MWH)", "electricity_exported", "Electricity Exported"),
                Column("Solar Power Usage (kWh)", "solar_power_usage", "Solar Power Usage"),
            ),
        ),
        YearTable(
            heading="Fuel Consumption",
            columns=(
                Column("Inside Company Diesel", "fuel_consumption", subcategory="inside_company_diesel", unit="litres"),
                Column("Inside Company Petrol", "fuel_consumption", subcategory="inside_company_petrol", unit="litres"),
                Column("Outside Company Diesel", "fuel_consumption", subcategory="outside_company_diesel", unit="litres"),
                Column("Outside Company Petrol", "fuel_consumption", subcategory="outside_company_petrol", unit="litres"),
            ),
        ),
        BulletList("Solar Infrastructure", "solar_infrastructure", "Solar Infrastructure"),
    ),
    summary_rules=(
        SummaryRule("total_bagasse_usage", "sum", "bagasse_usage"),
        SummaryRule("total_coal_consumption", "sum", "coal_consumption"),
        SummaryRule("latest_electricity_generated", "latest", "electricity_generated"),
        SummaryRule("latest_electricity_purchased", "latest", "electricity_purchased"),
        SummaryRule("total_fuel_consumption", "sum", "fuel_consumption"),
    ),
)

COMMUNITY = CategoryDefinition(
    key="community_engagement",
    slug="community",
    label="Community Engagement",
    categories=_categories("community_initiatives", "social_welfare", "environmental_efforts"),
    layout=(
        RowList(
            "Community Development Initiatives",
            "community_initiatives",
            "Community Development Initiatives",
            fields=(
                ("Initiative", "item"),
                ("Description", "details"),
                ("Beneficiaries", "beneficiaries"),
            ),
        ),
        BulletList("Social Welfare Programs", "social_welfare", "Social Welfare Programs"),
        BulletList(
            "Environmental Sustainability Efforts",
            "environmental_efforts",
            "Environmental Sustainability Efforts",
        ),
    ),
    summary_rules=(
        SummaryRule("initiatives_count", "count", "community_initiatives"),
        SummaryRule("social_welfare_count", "count", "social_welfare"),
        SummaryRule("environmental_efforts_count", "count", "environmental_efforts"),
    ),
)

BIODIVERSITY = CategoryDefinition(
    key="biodiversity_landuse",
    slug="biodiversity",
    label="Biodiversity & Land Use",
    categories=(
        "agricultural_land",
        "conservation_protected_habitat",
        "land_tenure",
        "restoration_deforestation",
        "fuelwood_substitution",
        "biodiversity_flora",
        "biodiversity_fauna",
        "human_wildlife_conflict",
        "summary",
    )
    + COMMON_CATEGORIES,
    layout=(
        YearTable(
            columns=(
                Column("Cane (ha)", "agricultural_land", "Area Under Cane", subcategory="cane"),
                Column("Orchards (ha)", "agricultural_land", "Area Under Orchards", subcategory="orchards"),
                Column("Conservation Area (ha)", "conservation_protected_habitat", "Conservation Area"),
            ),
        ),
        BulletList("Flora", "biodiversity_flora", "Flora Species"),
        BulletList("Fauna", "biodiversity_fauna", "Fauna Species"),
        BulletList("Human-Wildlife Conflict", "human_wildlife_conflict", "Human-Wildlife Conflict Controls"),
        SummaryRows("Data Summary"),
    ),
    summary_rules=(
        SummaryRule("latest_area_under_cane", "latest", "agricultural_land", "cane"),
        SummaryRule("latest_conservation_area", "latest", "conservation_protected_habitat"),
        SummaryRule("flora_species_count", "count", "biodiversity_flora"),
        SummaryRule("fauna_species_count", "count", "biodiversity_fauna"),
    ),
)

FARM_COMPLIANCE = CategoryDefinition(
    key="farm_management_compliance",
    slug="farm-compliance",
    label="Farm Management & Compliance",
    categories=_categories(
        "training_hours_executive",
        "training_hours_senior_management",
        "training_hours_other_employees",
        "training_focus_areas",
        "training_delivery_methods",
        "compliance_programs",
    ),
    layout=(
        YearTable(
            columns=(
                Column("Executive (hours)", "training_hours_executive", "Executive Training Hours"),
                Column("Senior Management (hours)", "training_hours_senior_management", "Senior Management Training Hours"),
                Column("Other Employees (hours)", "training_hours_other_employees", "Other Employees Training Hours"),
            ),
        ),
        BulletList("Training Focus Areas", "training_focus_areas", "Training Focus Areas"),
        BulletList("Training Delivery Methods", "training_delivery_methods", "Training Delivery Methods"),
        BulletList("Compliance Programs", "compliance_programs", "Compliance Programs"),
    ),
    summary_rules=(
        SummaryRule("total_executive_hours", "sum", "training_hours_executive"),
        SummaryRule("total_senior_management_hours", "sum", "training_hours_senior_management"),
        SummaryRule("total_other_employees_hours", "sum", "training_hours_other_employees"),
        SummaryRule("avg_executive_hours", "avg", "training_hours_executive"),
        SummaryRule("avg_senior_management_hours", "avg", "training_hours_senior_management"),
        SummaryRule("avg_other_employees_hours", "avg", "training_hours_other_employees"),
        SummaryRule("training_focus_areas_count", "count", "training_focus_areas"),
        SummaryRule("training_delivery_methods_count", "count", "training_delivery_methods"),
        SummaryRule("compliance_programs_count", "count", "compliance_programs"),
    ),
)

DEFINITIONS: tuple[CategoryDefinition, ...] = (
    IRRIGATION,
    GOVERNANCE,
    WASTE,
    OVERALL_ESG,
    HEALTH_SAFETY,
    ENERGY,
    COMMUNITY,
    BIODIVERSITY,
    FARM_COMPLIANCE,
)
