import math
from dataclasses import dataclass
from typing import Optional

from recommendations import get_purification_recommendations


class InvalidInput(ValueError):
    """Raised when site inputs are negative, non-numeric or not recognised."""


# --- Engine Constants ---

RUNOFF_COEFFICIENTS = {
    'concrete': 0.85,
    'metal': 0.90,
    'tile': 0.80,
    'asphalt': 0.75
}

# Seasonal distribution (typical for Indian climate). Eight buckets, Jan to Aug.
SEASONAL_DISTRIBUTION = [0.05, 0.05, 0.10, 0.15, 0.20, 0.25, 0.15, 0.05]

LITERS_PER_PERSON_PER_DAY = 150
MIN_STORAGE_DAYS = 30
MAX_STORAGE_DAYS = 90
MAX_STORAGE_EFFICIENCY = 0.95

BASE_COSTS = {
    'materials': {
        'tank': 2500,        # per m3
        'pipes': 150,        # per m
        'filters': 8000,     # fixed
        'pumps': 12000,      # fixed
        'accessories': 5000  # fixed
    },
    'labor': {
        'excavation': 300,    # per m3
        'installation': 800,  # per m3
        'plumbing': 200,      # per m
        'electrical': 3000    # fixed
    }
}

COMPLEXITY_MULTIPLIERS = {
    'Basic': {'materials': 1.0, 'labor': 1.0},
    'Intermediate': {'materials': 1.2, 'labor': 1.3},
    'Advanced': {'materials': 1.5, 'labor': 1.8}
}

PERIODIC_MAINTENANCE_PER_M3 = 50
PROJECT_LIFETIME_YEARS = 20
IRR_TOLERANCE = 0.001
IRR_SCAN_STEPS = 100

SENSITIVITY_VARIATIONS = [-20, -10, 0, 10, 20]
SENSITIVITY_BENEFIT_YEARS = 15

# Aliases accepted from the browser UI payloads.
_FIELD_ALIASES = {
    'roof_area_m2': ('roof_area_m2', 'roofArea', 'roof_area', 'rooftop_area'),
    'dwellers': ('dwellers', 'household_size'),
    'open_space_m2': ('open_space_m2', 'openSpace', 'open_space', 'open_space_area'),
    'annual_rainfall_mm': ('annual_rainfall_mm', 'annualRainfall', 'rainfall'),
    'roof_type': ('roof_type', 'roofType'),
    'water_price_per_kl': ('water_price_per_kl', 'waterPrice', 'water_price'),
    'discount_rate_pct': ('discount_rate_pct', 'discountRate', 'discount_rate'),
    'inflation_rate_pct': ('inflation_rate_pct', 'inflationRate', 'inflation_rate'),
    'name': ('name',),
    'location': ('location', 'location_name'),
    'lat': ('lat', 'user_lat'),
    'lon': ('lon', 'user_lon'),
    'intended_use': ('intended_use', 'intendedUse'),
}


def js_round(value, ndigits=0):
    """Round half up, the way the browser UI rounds its figures."""
    if not math.isfinite(value):
        raise InvalidInput("Inputs are too large to produce a finite estimate")
    factor = 10 ** ndigits
    rounded = math.floor(value * factor + 0.5) / factor
    return int(rounded) if ndigits == 0 else rounded


def _to_number(field, value, minimum=0.0, maximum=None):
    if isinstance(value, bool):
        raise InvalidInput(f"{field} must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise InvalidInput(f"{field} must be a number, got {value!r}")
    if math.isnan(number) or math.isinf(number):
        raise InvalidInput(f"{field} must be a finite number")
    if minimum is not None and number < minimum:
        raise InvalidInput(f"{field} must be >= {minimum:g}, got {number:g}")
    if maximum is not None and number > maximum:
        raise InvalidInput(f"{field} must be <= {maximum:g}, got {number:g}")
    return number


# (minimum, maximum) per numeric field; keeps every intermediate value finite
INPUT_LIMITS = {
    'roof_area_m2': (0.0, 1e7),
    'open_space_m2': (0.0, 1e7),
    'annual_rainfall_mm': (0.0, 2e4),
    'water_price_per_kl': (0.0, 1e6),
    'discount_rate_pct': (-99.0, 1000.0),
    'inflation_rate_pct': (-99.0, 1000.0),
    'dwellers': (0, 1e6),
    'lat': (-90.0, 90.0),
    'lon': (-180.0, 180.0),
}


@dataclass(frozen=True)
class SiteInputs:
    roof_area_m2: float = 0.0
    dwellers: int = 0
    open_space_m2: float = 0.0
    annual_rainfall_mm: float = 800.0
    roof_type: str = 'concrete'
    water_price_per_kl: float = 30.0
    discount_rate_pct: float = 8.0
    inflation_rate_pct: float = 4.0
    name: str = 'Resident'
    location: str = ''
    lat: Optional[float] = None
    lon: Optional[float] = None
    intended_use: str = 'general'

    def __post_init__(self):
        if self.annual_rainfall_mm is None:
            object.__setattr__(self, 'annual_rainfall_mm', 800.0)

        for field, (minimum, maximum) in INPUT_LIMITS.items():
            value = getattr(self, field)
            if value is None and field in ('lat', 'lon'):
                continue
            object.__setattr__(self, field, _to_number(field, value, minimum, maximum))

        if self.dwellers != int(self.dwellers):
            raise InvalidInput(f"dwellers must be a whole number, got {self.dwellers:g}")
        object.__setattr__(self, 'dwellers', int(self.dwellers))

        if self.roof_type not in RUNOFF_COEFFICIENTS:
            raise InvalidInput(
                f"roof_type must be one of {', '.join(RUNOFF_COEFFICIENTS)}, got {self.roof_type!r}"
            )

    @classmethod
    def from_mapping(cls, data):
        """Build validated inputs from a JSON payload (snake_case or camelCase keys)."""
        if data is None:
            data = {}
        if not isinstance(data, dict):
            raise InvalidInput("Request body must be a JSON object")

        values = {}
        for field, aliases in _FIELD_ALIASES.items():
            for alias in aliases:
                if alias in data and data[alias] is not None and data[alias] != '':
                    values[field] = data[alias]
                    break

        if 'roof_type' in values:
            values['roof_type'] = str(values['roof_type']).strip().lower()

        for field in ('name', 'location', 'intended_use'):
            if field in values:
                values[field] = str(values[field]).strip()

        return cls(**values)


# --- Core Calculation Functions ---

def compute_rainfall_analysis(inputs):
    """Monthly harvest, peak bucket and storage efficiency for a roof."""
    base_rainfall = max(0.0, inputs.annual_rainfall_mm)
    roof_area = max(0.0, inputs.roof_area_m2)
    runoff_coeff = RUNOFF_COEFFICIENTS[inputs.roof_type]

    monthly_rainfall = [base_rainfall * factor for factor in SEASONAL_DISTRIBUTION]
    # 1 mm on 1 m2 yields 1 liter
    monthly_harvest = [max(0.0, roof_area * rainfall * runoff_coeff) for rainfall in monthly_rainfall]

    total_annual_harvest = sum(monthly_harvest)

    peak_index = monthly_harvest.index(max(monthly_harvest))
    peak_harvest = monthly_harvest[peak_index]

    # Storage efficiency accounts for overflow during peak months
    if total_annual_harvest > 0:
        storage_efficiency = min(MAX_STORAGE_EFFICIENCY, 1 - (peak_harvest / total_annual_harvest) * 0.3)
    else:
        storage_efficiency = 0.0

    return {
        'runoff_coefficient': runoff_coeff,
        'total_annual': js_round(total_annual_harvest),
        'monthly': [js_round(val) for val in monthly_harvest],
        'peak_month': peak_index + 1,
        'peak_harvest': js_round(peak_harvest),
        'storage_efficiency': js_round(storage_efficiency, 2),
        'effective_harvest': js_round(total_annual_harvest * storage_efficiency)
    }


def _structure_for_volume(volume_m3):
    """Pick the structure tier and a footprint that holds the volume."""
    if volume_m3 <= 5:
        depth = 2.0
        side = math.ceil(math.sqrt(volume_m3 / depth))
        return 'Basic', 'RCC tank with first-flush and filter', side, depth
    elif volume_m3 <= 15:
        depth = 2.5
        side = math.ceil(math.sqrt(volume_m3))
        return 'Intermediate', 'RCC tank with recharge pit and silt trap', side, depth
    else:
        depth = 3.0
        side = math.ceil(math.sqrt(volume_m3 * 0.6))
        return 'Advanced', 'Recharge pit + storage tank with advanced filtration', side, depth


def compute_storage_optimization(effective_harvest_l, dwellers):
    """Size the storage against household demand."""
    effective_harvest = max(0.0, effective_harvest_l)
    dwellers = max(0, dwellers)

    naive_volume = max(1, js_round(effective_harvest / 1000))

    daily_demand = (dwellers * LITERS_PER_PERSON_PER_DAY) / 365
    if daily_demand > 0:
        supply_days = effective_harvest / (daily_demand * 365)
        optimal_days = min(MAX_STORAGE_DAYS, max(MIN_STORAGE_DAYS, supply_days))
    else:
        optimal_days = MAX_STORAGE_DAYS
    optimal_volume = js_round((daily_demand * optimal_days) / 1000)

    complexity, structure_type, side, depth = _structure_for_volume(optimal_volume)

    return {
        'recommended_volume': optimal_volume,
        'actual_volume': naive_volume,
        'structure_type': structure_type,
        'complexity': complexity,
        'dimensions': f"{side}m x {side}m x {depth:g}m",
        'dimensions_m': {'length_m': side, 'width_m': side, 'depth_m': depth},
        'storage_days': js_round(optimal_days),
        'utilization_rate': js_round(optimal_volume / max(naive_volume, 1), 2),
        'daily_demand_l': js_round(daily_demand, 2)
    }


def compute_cost_breakdown(volume_m3, complexity, roof_area_m2):
    """Material, labor and maintenance costs for the recommended structure."""
    if complexity not in COMPLEXITY_MULTIPLIERS:
        raise InvalidInput(
            f"complexity must be one of {', '.join(COMPLEXITY_MULTIPLIERS)}, got {complexity!r}"
        )
    volume = max(0.0, volume_m3)
    multipliers = COMPLEXITY_MULTIPLIERS[complexity]
    rates = BASE_COSTS

    # Pipe run estimated from the roof footprint plus the downpipe
    pipe_length = max(20.0, math.sqrt(max(0.0, roof_area_m2)) * 2 + 10)

    m = multipliers['materials']
    materials = {
        'tank': js_round(volume * rates['materials']['tank'] * m),
        'pipes': js_round(pipe_length * rates['materials']['pipes'] * m),
        'filters': js_round(rates['materials']['filters'] * m),
        'pumps': js_round(rates['materials']['pumps'] * m),
        'accessories': js_round(rates['materials']['accessories'] * m)
    }

    lab = multipliers['labor']
    labor = {
        'excavation': js_round(volume * rates['labor']['excavation'] * lab),
        'installation': js_round(volume * rates['labor']['installation'] * lab),
        'plumbing': js_round(pipe_length * rates['labor']['plumbing'] * lab),
        'electrical': js_round(rates['labor']['electrical'] * lab)
    }

    maintenance = {
        'annual': js_round((materials['tank'] + materials['pumps']) * 0.02),
        'periodic': js_round(volume * PERIODIC_MAINTENANCE_PER_M3),
        'replacement': js_round((materials['filters'] + materials['accessories']) * 0.1)
    }

    total_materials = sum(materials.values())
    total_labor = sum(labor.values())

    return {
        'materials': materials,
        'labor': labor,
        'maintenance': maintenance,
        'pipe_length_m': round(pipe_length, 1),
        'total_materials': total_materials,
        'total_labor': total_labor,
        'total_maintenance': sum(maintenance.values()),
        'total': total_materials + total_labor
    }


def _npv(rate, cash_flows):
    return sum(cash_flow / (1 + rate) ** year for year, cash_flow in enumerate(cash_flows))


def _scan_irr(cash_flows):
    """Coarse IRR: first whole-percent rate whose NPV is within tolerance of zero."""
    for i in range(IRR_SCAN_STEPS):
        test_rate = i * 0.01
        if abs(_npv(test_rate, cash_flows)) < IRR_TOLERANCE:
            return test_rate * 100
    return 0.0


def compute_financial_analysis(effective_harvest_l, cost_breakdown, water_price_per_kl,
                               discount_rate_pct, inflation_rate_pct):
    """NPV, IRR, ROI, payback and break-even over the project lifetime."""
    annual_water_value = (max(0.0, effective_harvest_l) / 1000) * max(0.0, water_price_per_kl)
    initial_cost = cost_breakdown['total']
    annual_maintenance = cost_breakdown['maintenance']['annual'] + cost_breakdown['maintenance']['periodic']
    inflation = inflation_rate_pct / 100
    discount_rate = discount_rate_pct / 100

    cash_flows = [-initial_cost]
    try:
        for year in range(1, PROJECT_LIFETIME_YEARS + 1):
            growth = (1 + inflation) ** (year - 1)
            cash_flows.append(annual_water_value * growth - annual_maintenance * growth)

        npv = _npv(discount_rate, cash_flows)
        irr = _scan_irr(cash_flows)
    except (OverflowError, ZeroDivisionError):
        raise InvalidInput("Discount and inflation rates are out of range for a finite estimate")

    total_benefits = sum(cash_flows[1:])
    roi = ((total_benefits - initial_cost) / initial_cost) * 100 if initial_cost > 0 else 0.0

    payback_period = PROJECT_LIFETIME_YEARS
    cumulative = 0.0
    for year in range(1, PROJECT_LIFETIME_YEARS + 1):
        cumulative += cash_flows[year]
        if cumulative >= initial_cost:
            payback_period = year
            break

    break_even_year = PROJECT_LIFETIME_YEARS
    cumulative_npv = cash_flows[0]
    for year in range(1, PROJECT_LIFETIME_YEARS + 1):
        cumulative_npv += cash_flows[year] / (1 + discount_rate) ** year
        if cumulative_npv >= 0:
            break_even_year = year
            break

    return {
        'npv': js_round(npv),
        'irr': js_round(irr, 2),
        'roi': js_round(roi, 2),
        'payback_period': payback_period,
        'break_even_year': break_even_year,
        'total_savings': js_round(total_benefits),
        'net_benefit': js_round(total_benefits - initial_cost),
        'annual_water_value': js_round(annual_water_value),
        'cash_flows': [js_round(cf) for cf in cash_flows]
    }


def compute_sensitivity_analysis(effective_harvest_l, total_cost, water_price_per_kl, base_npv):
    """Simplified 15-year, undiscounted NPV under +/-20% swings of harvest, cost and price.

    This is a cheap approximation and intentionally differs from the full
    discounted model, so even the 0% row does not reproduce ``base_npv``.
    """
    def _row(variation, adjusted_npv):
        return {
            'variation': variation,
            'npv': js_round(adjusted_npv),
            'change': js_round(((adjusted_npv - base_npv) / max(abs(base_npv), 1)) * 100)
        }

    rainfall, cost, water_price = [], [], []
    for variation in SENSITIVITY_VARIATIONS:
        factor = 1 + variation / 100

        adjusted_value = (effective_harvest_l * factor / 1000) * water_price_per_kl
        rainfall.append(_row(variation, adjusted_value * SENSITIVITY_BENEFIT_YEARS - total_cost))

        base_value = (effective_harvest_l / 1000) * water_price_per_kl
        cost.append(_row(variation, base_value * SENSITIVITY_BENEFIT_YEARS - total_cost * factor))

        priced_value = (effective_harvest_l / 1000) * (water_price_per_kl * factor)
        water_price.append(_row(variation, priced_value * SENSITIVITY_BENEFIT_YEARS - total_cost))

    return {
        'rainfall': rainfall,
        'cost': cost,
        'water_price': water_price
    }


def calculate_comprehensive_feasibility(inputs):
    """Run the whole pipeline for one set of site inputs."""
    rainfall = compute_rainfall_analysis(inputs)
    storage = compute_storage_optimization(rainfall['effective_harvest'], inputs.dwellers)
    costs = compute_cost_breakdown(storage['recommended_volume'], storage['complexity'], inputs.roof_area_m2)
    financial = compute_financial_analysis(
        rainfall['effective_harvest'],
        costs,
        inputs.water_price_per_kl,
        inputs.discount_rate_pct,
        inputs.inflation_rate_pct
    )
    sensitivity = compute_sensitivity_analysis(
        rainfall['effective_harvest'],
        costs['total'],
        inputs.water_price_per_kl,
        financial['npv']
    )

    # Household demand coverage
    annual_demand = inputs.dwellers * LITERS_PER_PERSON_PER_DAY * 365
    if annual_demand > 0:
        coverage = min((rainfall['effective_harvest'] / annual_demand) * 100, 100)
    else:
        coverage = 0.0

    if coverage >= 80:
        status = "Fully Feasible"
    elif coverage >= 50:
        status = "Partially Feasible"
    elif coverage >= 20:
        status = "Limited Feasible"
    else:
        status = "Not Feasible"

    return {
        'inputs': {
            'roof_area_m2': inputs.roof_area_m2,
            'dwellers': inputs.dwellers,
            'open_space_m2': inputs.open_space_m2,
            'annual_rainfall_mm': inputs.annual_rainfall_mm,
            'roof_type': inputs.roof_type,
            'water_price_per_kl': inputs.water_price_per_kl,
            'discount_rate_pct': inputs.discount_rate_pct,
            'inflation_rate_pct': inputs.inflation_rate_pct
        },
        'rainfall': rainfall,
        'storage': storage,
        'costs': costs,
        'financial': financial,
        'sensitivity': sensitivity,
        'purification': get_purification_recommendations(inputs.intended_use, inputs.roof_type),
        'annual_demand': annual_demand,
        'feasibility_percentage': round(coverage, 1),
        'feasibility_status': status
    }
