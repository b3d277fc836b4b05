STRUCTURE_CATALOG = [
    {
        'name': 'RCC tank',
        'description': 'Reinforced concrete storage tank with first-flush and filtration suitable for rooftop collection.',
        'suitability': ['Urban rooftops', 'Limited ground space', 'Potable with treatment'],
        'typical_dims': '2m x 2m x 2.5m (10 m3) or modular per demand',
        'materials': ['RCC', 'PVC/HDPE pipes', 'First-flush valve', 'Sand/charcoal filter'],
        'est_cost': '₹60,000-1,80,000 for 5-15 m3 (varies by region)',
        'maintenance': ['Quarterly cleaning', 'Filter media replacement yearly', 'Inspect for cracks/leaks']
    },
    {
        'name': 'Recharge pit',
        'description': 'Percolation pit to recharge groundwater using filtered rooftop/yard runoff.',
        'suitability': ['Areas with permeable soil', 'Space available in setback', 'Reduce flooding'],
        'typical_dims': '1.5m x 1.5m x 2-3m depth with gravel and sand filter',
        'materials': ['Bricks/RCC rings', 'Gravel & sand', 'Geo-textile', 'PVC pipes'],
        'est_cost': '₹25,000-70,000 depending on depth & lining',
        'maintenance': ['Desilt before monsoon', 'Inspect inlets', 'Replace clogged media as needed']
    },
    {
        'name': 'Percolation trench',
        'description': 'Linear trench to intercept and recharge runoff along plot periphery.',
        'suitability': ['Large plots', 'Parking and landscapes', 'Reduce surface runoff'],
        'typical_dims': '0.6-1m wide x 1.5-2m deep, length as required',
        'materials': ['Bricks/stones', 'Gravel/sand', 'Perforated pipes'],
        'est_cost': '₹1,200-2,500 per running meter',
        'maintenance': ['Desilt chambers', 'Remove debris', 'Maintain vegetative cover']
    },
    {
        'name': 'Rain barrel',
        'description': 'Small capacity HDPE barrel connected to downpipe for basic non-potable reuse.',
        'suitability': ['Small homes', 'Gardening', 'Low cost'],
        'typical_dims': '200-500 L drums, elevate on stand with tap',
        'materials': ['HDPE barrel', 'Tap & overflow pipe', 'Leaf screen'],
        'est_cost': '₹3,000-10,000',
        'maintenance': ['Clean screen monthly', 'Flush after first rains', 'Keep covered']
    },
    {
        'name': 'Recharge well',
        'description': 'Deep bore with recharge filter to inject treated runoff into aquifer where allowed.',
        'suitability': ['High runoff sites', 'Regulatory approval', 'Deeper water table'],
        'typical_dims': '150-300mm dia to 30-60m depth with filter pack',
        'materials': ['PVC casing', 'Gravel pack', 'Silt trap', 'Filter media'],
        'est_cost': '₹80,000-2,50,000',
        'maintenance': ['Desilt traps', 'Test water quality periodically', 'Regulatory compliance']
    },
    {
        'name': 'Modular underground tank',
        'description': 'Subsurface modular PP crate tank wrapped in geotextile for high-volume storage under driveways/yards.',
        'suitability': ['Space constraints', 'Driveway/parking underlay', 'Large storage'],
        'typical_dims': 'Modular crates assembled to 5-50 m3, burial depth 1-2.5 m',
        'materials': ['PP crates', 'Geotextile', 'HDPE liner (optional)', 'Inlet/outlet pipes', 'Access chamber'],
        'est_cost': '₹3,500-6,000 per m3 + excavation',
        'maintenance': ['Inspect access chamber', 'Flush silt trap pre-monsoon', 'Check liner integrity']
    },
    {
        'name': 'Recharge shaft',
        'description': 'Vertical shaft with filter media to rapidly recharge deeper strata; used where water table is deep.',
        'suitability': ['Large campuses', 'High runoff areas', 'Deep aquifer recharge'],
        'typical_dims': '0.6-1 m dia x 10-20 m depth with gravel/sand filter',
        'materials': ['Precast RCC rings', 'Gravel/sand', 'Silt trap', 'PVC pipes'],
        'est_cost': '₹1,20,000-3,00,000 (site dependent)',
        'maintenance': ['Desilt silt traps', 'Inspect media annually', 'Ensure safety cover']
    },
    {
        'name': 'Infiltration gallery',
        'description': 'Subsurface gravel trench with perforated pipes to distribute and infiltrate filtered runoff.',
        'suitability': ['Sandy soils', 'Landscape areas', 'Distributed recharge'],
        'typical_dims': '0.8-1 m wide x 1.5-2 m deep; length as required',
        'materials': ['Perforated HDPE pipes', 'Gravel', 'Geotextile', 'Inspection ports'],
        'est_cost': '₹1,800-3,000 per running meter',
        'maintenance': ['Vacuum clean inspection ports', 'Replace clogged sections', 'Maintain pretreatment']
    },
    {
        'name': 'Soak pit',
        'description': 'Circular percolation pit filled with brick bats/gravel for small plot recharge.',
        'suitability': ['Individual houses', 'Low budget', 'Non-clayey soils'],
        'typical_dims': '1-1.2 m dia x 2-3 m depth',
        'materials': ['Brick bats', 'Gravel', 'PVC pipe', 'Top slab with cover'],
        'est_cost': '₹15,000-40,000',
        'maintenance': ['Remove silt annually', 'Prevent direct debris entry', 'Cover securely']
    },
    {
        'name': 'Filter chamber',
        'description': 'Two-chamber sand/charcoal filter for pretreatment of rooftop runoff before storage/recharge.',
        'suitability': ['All systems as pretreatment', 'Roof runoff polishing'],
        'typical_dims': '0.6 m x 0.6 m x 0.9 m per chamber (customizable)',
        'materials': ['Bricks/RCC', 'Sand', 'Gravel', 'Charcoal', 'Mesh screens'],
        'est_cost': '₹8,000-25,000',
        'maintenance': ['Replace media yearly', 'Clean screens monthly', 'Bypass during first flush if needed']
    }
]


def find_structure(query):
    """Look up a catalog entry by exact name, then by substring."""
    norm = (query or '').strip().lower()
    if not norm:
        return None

    for structure in STRUCTURE_CATALOG:
        if structure['name'].lower() == norm:
            return structure

    for structure in STRUCTURE_CATALOG:
        if norm in structure['name'].lower():
            return structure
    return None


def get_purification_recommendations(intended_use, roof_type):
    """Recommend filtration sequence based on intended use and roof material."""
    intended_use = (intended_use or 'general').lower()
    base_sequence = [
        "Gutter mesh/screen - Remove leaves, twigs, debris",
        "First-flush diverter - Discard initial dirty runoff (5-10 min)",
        "Silt trap chamber - Allow heavy particles to settle"
    ]

    # Asphalt shingles leach hydrocarbons into the first runoff
    if roof_type == 'asphalt':
        base_sequence.append("Activated carbon pre-filter - Remove bitumen residue from asphalt roofing")

    if intended_use in ['drinking', 'potable', 'cooking']:
        base_sequence.extend([
            "Multi-layer filter - Sand, gravel, activated charcoal",
            "UV disinfection or chlorination",
            "Optional: RO system for drinking water"
        ])
        maintenance_freq = "Monthly filter cleaning, quarterly media replacement"
        estimated_cost = "₹15,000-30,000 for complete treatment"

    elif intended_use in ['gardening', 'toilet', 'non-potable']:
        base_sequence.extend([
            "Simple sand-gravel filter",
            "Mesh filter for final screening"
        ])
        maintenance_freq = "Quarterly cleaning, annual media check"
        estimated_cost = "₹5,000-12,000 for basic treatment"

    else:  # General use
        base_sequence.append("Sand-gravel-charcoal filter")
        maintenance_freq = "Bi-monthly cleaning"
        estimated_cost = "₹8,000-18,000 for standard treatment"

    return {
        'treatment_sequence': base_sequence,
        'maintenance_schedule': maintenance_freq,
        'estimated_cost': estimated_cost,
        'water_quality_expected': 'Potable' if intended_use in ['drinking', 'potable', 'cooking'] else 'Non-potable suitable'
    }
