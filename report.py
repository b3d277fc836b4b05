from datetime import datetime

from fpdf import FPDF, XPos, YPos

FONT = 'Helvetica'


def _latin1(text):
    """Core PDF fonts only cover latin-1."""
    text = str(text).replace('₹', 'Rs. ').replace('²', '2').replace('³', '3')
    return text.encode('latin-1', 'replace').decode('latin-1')


class FeasibilityPDF(FPDF):
    def header(self):
        self.set_font(FONT, 'B', 12)
        self.cell(0, 10, 'Rooftop Rainwater Harvesting Report', new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
        self.ln(5)

    def footer(self):
        self.set_y(-15)
        self.set_font(FONT, '', 8)
        self.cell(0, 10, f'Page {self.page_no()}', align='C')

    def section_title(self, title):
        self.set_font(FONT, 'B', 14)
        self.set_text_color(0, 77, 76)
        self.cell(0, 10, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='L')
        self.line(self.get_x(), self.get_y(), self.get_x() + 190, self.get_y())
        self.ln(4)

    def write_key_value_table(self, data):
        self.set_font(FONT, '', 11)
        self.set_text_color(51, 51, 51)
        key_col_width = 65
        val_col_width = self.w - self.l_margin - self.r_margin - key_col_width
        line_height = self.font_size * 1.5
        for key, value in data.items():
            self.set_font(FONT, 'B')
            self.cell(key_col_width, line_height, _latin1(key), border=0)
            self.set_font(FONT, '')
            self.multi_cell(val_col_width, line_height, _latin1(value), border=0,
                            new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(5)

    def write_list(self, items):
        self.set_font(FONT, '', 11)
        self.set_text_color(51, 51, 51)
        for item in items:
            self.multi_cell(0, 5, _latin1(f'- {item}'), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
            self.ln(2)
        self.ln(5)

    def write_sensitivity_table(self, title, rows):
        self.set_font(FONT, 'B', 11)
        self.cell(0, 8, _latin1(title), new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.set_font(FONT, '', 10)
        for row in rows:
            self.cell(40, 6, f"{row['variation']:+d}%")
            self.cell(60, 6, f"NPV Rs. {row['npv']:,}")
            self.cell(0, 6, f"{row['change']:+d}% vs base", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
        self.ln(3)


def build_feasibility_report(inputs, analysis):
    """Render the feasibility analysis of one site as PDF bytes."""
    rainfall = analysis['rainfall']
    storage = analysis['storage']
    costs = analysis['costs']
    financial = analysis['financial']

    pdf = FeasibilityPDF()
    pdf.add_page()
    pdf.set_font(FONT, 'B', 24)
    pdf.set_text_color(0, 77, 76)
    pdf.cell(0, 10, 'Rooftop Rainwater Harvesting Report', new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
    pdf.set_font(FONT, '', 11)
    pdf.set_text_color(51, 51, 51)
    pdf.cell(0, 10, f'Report generated on: {datetime.now().strftime("%d %B %Y")}',
             new_x=XPos.LMARGIN, new_y=YPos.NEXT, align='C')
    pdf.ln(10)

    pdf.section_title('1. Your Property Details')
    pdf.write_key_value_table({
        "Property Owner": inputs.name,
        "Location": inputs.location or "Not specified",
        "Household Size": f"{inputs.dwellers} People",
        "Rooftop Area": f"{inputs.roof_area_m2:.1f} m2",
        "Open Space Area": f"{inputs.open_space_m2:.1f} m2",
        "Roof Type": inputs.roof_type.title(),
    })

    pdf.section_title('2. Rainfall & Harvest')
    pdf.write_key_value_table({
        "Annual Rainfall": f"{inputs.annual_rainfall_mm:.0f} mm",
        "Runoff Coefficient": f"{rainfall['runoff_coefficient']:.2f}",
        "Total Harvest Potential": f"{rainfall['total_annual']:,} Liters",
        "Peak Month": f"Month {rainfall['peak_month']} ({rainfall['peak_harvest']:,} Liters)",
        "Storage Efficiency": f"{rainfall['storage_efficiency'] * 100:.0f}%",
        "Effective Harvest": f"{rainfall['effective_harvest']:,} Liters",
        "Demand Coverage": f"{analysis['feasibility_percentage']}% ({analysis['feasibility_status']})",
    })

    pdf.section_title('3. Recommended Storage')
    pdf.write_key_value_table({
        "Structure": storage['structure_type'],
        "Complexity": storage['complexity'],
        "Recommended Volume": f"{storage['recommended_volume']} m3",
        "Approx. Dimensions": storage['dimensions'],
        "Storage Coverage": f"{storage['storage_days']} days",
        "Utilization Rate": f"{storage['utilization_rate']:.2f}",
    })

    pdf.section_title('4. Cost Breakdown')
    pdf.write_key_value_table({
        "Materials": f"Rs. {costs['total_materials']:,}",
        "Labor": f"Rs. {costs['total_labor']:,}",
        "Total Installation": f"Rs. {costs['total']:,}",
        "Annual Maintenance": f"Rs. {costs['maintenance']['annual'] + costs['maintenance']['periodic']:,}",
        "Replacement Reserve": f"Rs. {costs['maintenance']['replacement']:,}",
    })

    pdf.section_title('5. Financial Analysis (20 years)')
    pdf.write_key_value_table({
        "Net Present Value": f"Rs. {financial['npv']:,}",
        "Internal Rate of Return": f"{financial['irr']}%",
        "Return on Investment": f"{financial['roi']}%",
        "Payback Period": f"{financial['payback_period']} years",
        "Break-even Year": f"Year {financial['break_even_year']}",
        "Net Benefit": f"Rs. {financial['net_benefit']:,}",
    })

    pdf.section_title('6. Sensitivity (15-year simplified NPV)')
    pdf.write_sensitivity_table('Rainfall', analysis['sensitivity']['rainfall'])
    pdf.write_sensitivity_table('Installation Cost', analysis['sensitivity']['cost'])
    pdf.write_sensitivity_table('Water Price', analysis['sensitivity']['water_price'])

    purification = analysis['purification']
    pdf.section_title('7. Water Purification Plan')
    pdf.write_key_value_table({
        "Intended Use": inputs.intended_use,
        "Maintenance Schedule": purification['maintenance_schedule'],
        "Est. Treatment System Cost": purification['estimated_cost'],
    })
    pdf.set_font(FONT, 'B', 11)
    pdf.cell(0, 10, "Recommended Treatment Sequence:", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.write_list(purification['treatment_sequence'])

    # .output() returns a bytearray
    return bytes(pdf.output())
